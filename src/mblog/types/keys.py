"""Aura public key type."""

from __future__ import annotations

from typing import Any, ClassVar, Self

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema


class AuraPublicKey(bytes):
    """
    An sr25519 Aura public key.

    Stored as raw bytes, rendered as 0x-prefixed lowercase hex.
    """

    LENGTH: ClassVar[int] = 32
    """Public key length in bytes."""

    def __new__(cls, value: bytes) -> Self:
        """Create a key, rejecting anything that is not exactly 32 bytes."""
        if len(value) != cls.LENGTH:
            raise ValueError(f"{cls.__name__} requires {cls.LENGTH} bytes, got {len(value)}")
        return super().__new__(cls, value)

    @classmethod
    def from_hex(cls, value: str) -> Self:
        """
        Parse a key from hex, with or without a 0x prefix.

        Raises:
            ValueError: If the string is not valid hex or has the wrong length.
        """
        text = value.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        return cls(bytes.fromhex(text))

    def to_hex(self) -> str:
        """Render as 0x-prefixed lowercase hex."""
        return "0x" + self.hex()

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_hex()})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Validate from an instance or hex string; serialize as hex."""
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda key: key.to_hex()
            ),
        )

    @classmethod
    def _coerce(cls, value: Any) -> AuraPublicKey:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        if isinstance(value, bytes):
            return cls(value)
        raise ValueError(f"Expected {cls.__name__}, got {type(value).__name__}")
