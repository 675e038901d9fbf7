"""
Account Addresses

An address is an opaque 20-byte account identifier supplied by callers.
Textual form is "0x" followed by 40 hex characters.
"""

from dataclasses import dataclass
from typing import Union

from .errors import InvalidAddress

ADDRESS_LENGTH = 20


@dataclass(frozen=True)
class Address:
    """Immutable 20-byte account identifier"""
    value: bytes

    def __post_init__(self):
        if isinstance(self.value, bytearray):
            object.__setattr__(self, 'value', bytes(self.value))
        if not isinstance(self.value, bytes) or len(self.value) != ADDRESS_LENGTH:
            raise InvalidAddress(f"Address must be exactly {ADDRESS_LENGTH} bytes")

    @classmethod
    def parse(cls, text: str) -> 'Address':
        """
        Parse an address from its hex form

        A leading "0x" and surrounding whitespace are ignored. The remainder
        must be exactly 40 hex characters, in any case.
        """
        if not isinstance(text, str):
            raise InvalidAddress(f"Expected address string, got {type(text).__name__}")

        cleaned = text.strip()
        if cleaned[:2].lower() == "0x":
            cleaned = cleaned[2:]

        if len(cleaned) != ADDRESS_LENGTH * 2:
            raise InvalidAddress(
                f"Expected 40 characters. Got {len(cleaned)} instead: {cleaned}"
            )

        try:
            return cls(bytes.fromhex(cleaned))
        except ValueError as e:
            raise InvalidAddress(f"Could not parse hex string into address bytes: {e}")

    @classmethod
    def coerce(cls, value: Union['Address', str, bytes]) -> 'Address':
        """Accept an Address, its hex string, or its raw bytes"""
        if isinstance(value, Address):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        return cls.parse(value)

    def is_zero(self) -> bool:
        return self.value == bytes(ADDRESS_LENGTH)

    def __str__(self) -> str:
        return "0x" + self.value.hex()

    def __repr__(self) -> str:
        return f"Address({self})"


ZERO_ADDRESS = Address(bytes(ADDRESS_LENGTH))
