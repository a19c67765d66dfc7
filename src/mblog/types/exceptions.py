"""Exception hierarchy for mblog."""

from __future__ import annotations

from pathlib import Path


class MblogError(Exception):
    """
    Base exception for all mblog errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class IdentityError(MblogError):
    """
    Base class for identity resolution failures.

    Always fatal. Raised only at startup, before any chain data is recorded.
    """


class NoKeyFound(IdentityError):
    """
    Raised when no keystore key is confirmed by the node.

    Attributes:
        keystore_path: The keystore directory that was scanned.
        candidates: Candidate keys found on disk (may be empty).
    """

    def __init__(self, keystore_path: Path, candidates: tuple[str, ...] = ()) -> None:
        self.keystore_path = keystore_path
        self.candidates = candidates

        if candidates:
            msg = (
                f"none of the Aura keys in keystore '{keystore_path}' is held by the node "
                f"(author_hasKey=false for {list(candidates)})"
            )
        else:
            msg = (
                f"no Aura key found in keystore '{keystore_path}': expected a file named "
                "like 61757261<pubkey32bytes> (hex)"
            )
        super().__init__(msg)


class AmbiguousKeys(IdentityError):
    """
    Raised when more than one keystore key is confirmed by the node.

    The operator must resolve this at the keystore level.

    Attributes:
        keystore_path: The keystore directory that was scanned.
        confirmed: Keys the node reported it can sign with.
    """

    def __init__(self, keystore_path: Path, confirmed: tuple[str, ...]) -> None:
        self.keystore_path = keystore_path
        self.confirmed = confirmed

        super().__init__(
            f"multiple Aura keys in keystore '{keystore_path}' are held by the node: "
            f"{list(confirmed)}. Keep only one Aura key, or use a dedicated keystore path."
        )


class NodeUnreachable(MblogError):
    """
    Raised when the node cannot be reached or the connection drops.

    Retried with backoff in watch mode. Fatal in one-shot mode.
    """


class RpcError(MblogError):
    """
    Raised when the node answers a request with a JSON-RPC error object.

    Attributes:
        method: The RPC method that failed.
        code: JSON-RPC error code.
    """

    def __init__(self, method: str, code: int, message: str) -> None:
        self.method = method
        self.code = code
        super().__init__(f"{method} failed with code {code}: {message}")


class InconsistentChainState(MblogError):
    """
    Raised when node data contradicts prior assumptions.

    Triggers a full re-resolution rather than a crash.
    """


class ScaleDecodeError(InconsistentChainState):
    """
    Raised when SCALE bytes returned by the node cannot be decoded.

    Attributes:
        type_name: The type being decoded.
        detail: Description of what went wrong.
    """

    def __init__(self, type_name: str, detail: str) -> None:
        self.type_name = type_name
        self.detail = detail
        super().__init__(f"Failed to decode {type_name}: {detail}")


class StorageError(MblogError):
    """Raised when the schedule database is used in a way it does not allow."""


class PersistenceConflict(StorageError):
    """
    An epoch row already exists with different authority data.

    Never raised to callers. It is constructed to carry the details into the
    warning log. The existing row stays authoritative.

    Attributes:
        epoch: The epoch whose row conflicts.
        stored: Summary of the persisted values.
        observed: Summary of the newly observed values.
    """

    def __init__(self, epoch: int, stored: str, observed: str) -> None:
        self.epoch = epoch
        self.stored = stored
        self.observed = observed
        super().__init__(
            f"epoch {epoch} already recorded with {stored}; ignoring observed {observed}"
        )


class StatusRegression(StorageError):
    """
    A status update would move a block record backwards in the lattice.

    Never raised to callers. Logged at DEBUG level only.

    Attributes:
        slot: Slot of the record.
        current: Stored status value.
        requested: Rejected status value.
    """

    def __init__(self, slot: int, current: str, requested: str) -> None:
        self.slot = slot
        self.current = current
        self.requested = requested
        super().__init__(f"slot {slot}: ignoring {requested!r} over stored {current!r}")
