"""
Substrate JSON-RPC client over WebSocket.

One WebSocket carries both request/response calls and subscriptions. A single
reader task owns the socket's receive side and routes every incoming frame:

- Responses (frames with an ``id``) resolve the matching pending future.
- Notifications (frames with ``params.subscription``) go to that
  subscription's queue.

When the socket closes, every pending call fails and every subscription
iterator raises ``NodeUnreachable``. Callers reconnect by calling
``connect()`` again on the same client.


SUBSCRIPTION RACE
-----------------
A node may push the first notification before our code has seen the
subscription id returned by the subscribe call. The reader therefore creates
the queue on first sight of an id, and the subscriber adopts it.

The connection may also close before the subscriber resumes. Queues stay
registered until the next ``connect()``, so a late subscriber still adopts
its queue, drains what arrived and then sees the close.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, Final

import aiohttp

from mblog.chain.config import AURA_SLOT_DURATION_CALL
from mblog.types import AuraPublicKey, NodeUnreachable, RpcError

from .scale import Header, decode_authorities, decode_u64, hex_to_bytes, storage_key

logger = logging.getLogger(__name__)

DEFAULT_WS_URL: Final = "ws://127.0.0.1:9944"
"""Default node WebSocket endpoint."""

REQUEST_TIMEOUT: Final = 30.0
"""Timeout for a single RPC call in seconds."""

CONNECT_TIMEOUT: Final = 10.0
"""Timeout for establishing the WebSocket in seconds."""

HEARTBEAT_INTERVAL: Final = 20.0
"""WebSocket ping interval in seconds. Detects silently dead connections."""

UNSUBSCRIBE_TIMEOUT: Final = 2.0
"""Upper bound on the courtesy unsubscribe call when a stream ends."""

AURA_AUTHORITIES_KEY: Final = storage_key("Aura", "Authorities")
"""Storage key of ``Aura.Authorities``."""

TIMESTAMP_NOW_KEY: Final = storage_key("Timestamp", "Now")
"""Storage key of ``Timestamp.Now``."""

_CLOSED: Final = object()
"""Sentinel pushed to subscription queues when the connection ends."""


@dataclass(slots=True)
class NodeClient:
    """
    Reconnectable JSON-RPC client for a Substrate node.

    Implements the ``NodeApi`` protocol on top of an aiohttp WebSocket.
    """

    url: str = DEFAULT_WS_URL
    """WebSocket endpoint of the node."""

    request_timeout: float = REQUEST_TIMEOUT
    """Per-call timeout in seconds."""

    _session: aiohttp.ClientSession | None = field(default=None, init=False, repr=False)
    _ws: aiohttp.ClientWebSocketResponse | None = field(default=None, init=False, repr=False)
    _reader: asyncio.Task[None] | None = field(default=None, init=False, repr=False)
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1), repr=False)
    _pending: dict[int, asyncio.Future[Any]] = field(default_factory=dict, repr=False)
    _subscriptions: dict[str, asyncio.Queue[Any]] = field(default_factory=dict, repr=False)
    _closed: bool = field(default=True, init=False, repr=False)
    _connection: int = field(default=0, init=False, repr=False)

    @property
    def is_connected(self) -> bool:
        """Whether the WebSocket is open."""
        return not self._closed and self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        """
        Open the WebSocket, closing any previous connection first.

        Raises:
            NodeUnreachable: If the node cannot be reached.
        """
        await self.close()
        self._subscriptions = {}

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, sock_connect=CONNECT_TIMEOUT)
        )
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                heartbeat=HEARTBEAT_INTERVAL,
                max_msg_size=0,
            )
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as exc:
            await self._session.close()
            self._session = None
            raise NodeUnreachable(f"cannot connect to {self.url}: {exc}") from exc

        self._connection += 1
        self._closed = False
        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Connected to node at %s", self.url)

    async def close(self) -> None:
        """Close the connection. Safe to call repeatedly."""
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None

        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None

        self._fail_all(NodeUnreachable(f"connection to {self.url} closed"))

    async def __aenter__(self) -> NodeClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _read_loop(self) -> None:
        """Route incoming frames until the socket closes."""
        assert self._ws is not None
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._dispatch(json.loads(msg.data))
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("WebSocket error: %s", self._ws.exception())
                    break
        except (aiohttp.ClientError, json.JSONDecodeError) as exc:
            logger.warning("Node connection failed: %s", exc)

        # Falling out of the loop means the connection is gone.
        self._fail_all(NodeUnreachable(f"connection to {self.url} lost"))

    def _dispatch(self, frame: dict[str, Any]) -> None:
        """Deliver one decoded frame to its waiter or subscription."""
        if "id" in frame and frame["id"] is not None:
            future = self._pending.pop(frame["id"], None)
            if future is None or future.done():
                return
            future.set_result(frame)
            return

        params = frame.get("params")
        if not isinstance(params, dict) or "subscription" not in params:
            logger.debug("Ignoring unexpected frame: %s", frame)
            return

        queue = self._subscriptions.setdefault(str(params["subscription"]), asyncio.Queue())
        queue.put_nowait(params.get("result"))

    def _fail_all(self, error: NodeUnreachable) -> None:
        """Fail pending calls and end subscriptions. Runs once per connection."""
        if self._closed:
            return
        self._closed = True

        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()

        for queue in self._subscriptions.values():
            queue.put_nowait(_CLOSED)

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make a JSON-RPC call.

        Raises:
            NodeUnreachable: Not connected, connection lost or timed out.
            RpcError: The node returned an error object.
        """
        if not self.is_connected:
            raise NodeUnreachable(f"not connected to {self.url}")
        assert self._ws is not None

        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or []}
        logger.debug("RPC call: %s", method)

        try:
            await self._ws.send_json(payload)
            frame = await asyncio.wait_for(future, timeout=self.request_timeout)
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise NodeUnreachable(f"{method}: send failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise NodeUnreachable(f"{method}: no response in {self.request_timeout}s") from exc
        finally:
            self._pending.pop(request_id, None)

        if "error" in frame:
            error = frame["error"] or {}
            raise RpcError(method, int(error.get("code", -1)), str(error.get("message", "")))
        return frame.get("result")

    async def subscribe(self, method: str, unsubscribe_method: str) -> AsyncIterator[Any]:
        """
        Subscribe and yield notification payloads until the connection ends.

        Raises:
            NodeUnreachable: When the connection ends.
        """
        connection = self._connection
        subscription_id = str(await self.request(method))
        if connection != self._connection:
            raise NodeUnreachable(f"{method}: connection replaced while subscribing")

        queue = self._subscriptions.get(subscription_id)
        if queue is None:
            if self._closed:
                raise NodeUnreachable(f"{method} subscription ended: connection lost")
            queue = self._subscriptions[subscription_id] = asyncio.Queue()
        logger.debug("Subscribed to %s (id=%s)", method, subscription_id)

        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    raise NodeUnreachable(f"{method} subscription ended: connection lost")
                yield item
        finally:
            if self._subscriptions.get(subscription_id) is queue:
                del self._subscriptions[subscription_id]
            if self.is_connected and connection == self._connection:
                try:
                    await asyncio.wait_for(
                        self.request(unsubscribe_method, [subscription_id]),
                        timeout=UNSUBSCRIBE_TIMEOUT,
                    )
                except (NodeUnreachable, RpcError, asyncio.TimeoutError) as exc:
                    logger.debug("Unsubscribe %s failed: %s", subscription_id, exc)

    # -------------------------------------------------------------------------
    # Node capabilities
    # -------------------------------------------------------------------------

    async def has_key(self, public_key: AuraPublicKey, key_type: str) -> bool:
        """Ask ``author_hasKey`` whether the node can sign with public_key."""
        return bool(await self.request("author_hasKey", [public_key.to_hex(), key_type]))

    async def get_header(self, block_hash: str | None = None) -> Header | None:
        """Fetch a header (best block when hash is None)."""
        raw = await self.request("chain_getHeader", [block_hash] if block_hash else [])
        return Header.from_rpc(raw) if raw is not None else None

    async def get_block_hash(self, number: int | None = None) -> str | None:
        """Fetch the canonical hash at a height (best block when None)."""
        return await self.request("chain_getBlockHash", [number] if number is not None else [])

    async def get_finalized_head(self) -> str:
        """Fetch the latest finalized block hash."""
        return str(await self.request("chain_getFinalizedHead"))

    async def get_storage(self, key: str, at: str | None = None) -> bytes | None:
        """Fetch a raw storage value."""
        params: list[Any] = [key] if at is None else [key, at]
        raw = await self.request("state_getStorage", params)
        return hex_to_bytes(raw) if raw is not None else None

    async def get_authorities(self, at: str | None = None) -> list[AuraPublicKey]:
        """Fetch the ordered Aura authority set. Missing storage yields an empty list."""
        raw = await self.get_storage(AURA_AUTHORITIES_KEY, at)
        return decode_authorities(raw) if raw is not None else []

    async def get_timestamp(self, at: str | None = None) -> int | None:
        """Fetch ``Timestamp.Now`` (ms)."""
        raw = await self.get_storage(TIMESTAMP_NOW_KEY, at)
        return decode_u64(raw) if raw is not None else None

    async def get_slot_duration(self, at: str | None = None) -> int:
        """Fetch the slot duration (ms) from the Aura runtime API."""
        params: list[Any] = [AURA_SLOT_DURATION_CALL, "0x"]
        if at is not None:
            params.append(at)
        return decode_u64(hex_to_bytes(await self.request("state_call", params)))

    async def subscribe_best_heads(self) -> AsyncIterator[Header]:
        """Stream new best-head headers."""
        async with aclosing(
            self.subscribe("chain_subscribeNewHeads", "chain_unsubscribeNewHeads")
        ) as stream:
            async for raw in stream:
                yield Header.from_rpc(raw)

    async def subscribe_finalized_heads(self) -> AsyncIterator[Header]:
        """Stream newly finalized headers."""
        async with aclosing(
            self.subscribe("chain_subscribeFinalizedHeads", "chain_unsubscribeFinalizedHeads")
        ) as stream:
            async for raw in stream:
                yield Header.from_rpc(raw)
