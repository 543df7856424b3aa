"""Consensus serialization for the Clarity values used by pox-4 calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

from stacker.pox.types import MAX_U128, PoxAddress
from stacker.signing.keys import c32_address_decode

MAX_TUPLE_KEY_LENGTH = 128


class ClarityType(IntEnum):
    INT = 0x00
    UINT = 0x01
    BUFFER = 0x02
    BOOL_TRUE = 0x03
    BOOL_FALSE = 0x04
    PRINCIPAL_STANDARD = 0x05
    PRINCIPAL_CONTRACT = 0x06
    RESPONSE_OK = 0x07
    RESPONSE_ERR = 0x08
    OPTIONAL_NONE = 0x09
    OPTIONAL_SOME = 0x0A
    LIST = 0x0B
    TUPLE = 0x0C
    STRING_ASCII = 0x0D
    STRING_UTF8 = 0x0E


def _u32(value: int) -> bytes:
    return value.to_bytes(4, "big")


@dataclass(frozen=True)
class ClarityValue:
    """Base class for serializable Clarity values."""

    def serialize(self) -> bytes:
        raise NotImplementedError


@dataclass(frozen=True)
class UIntCV(ClarityValue):
    value: int

    def serialize(self) -> bytes:
        if not 0 <= self.value <= MAX_U128:
            raise ValueError(f"Value out of uint128 range: {self.value}")
        return bytes([ClarityType.UINT]) + self.value.to_bytes(16, "big")


@dataclass(frozen=True)
class BufferCV(ClarityValue):
    data: bytes

    def serialize(self) -> bytes:
        return bytes([ClarityType.BUFFER]) + _u32(len(self.data)) + self.data


@dataclass(frozen=True)
class StringAsciiCV(ClarityValue):
    value: str

    def serialize(self) -> bytes:
        try:
            encoded = self.value.encode("ascii")
        except UnicodeEncodeError:
            raise ValueError(f"Value is not ASCII: {self.value!r}")
        return bytes([ClarityType.STRING_ASCII]) + _u32(len(encoded)) + encoded


@dataclass(frozen=True)
class NoneCV(ClarityValue):
    def serialize(self) -> bytes:
        return bytes([ClarityType.OPTIONAL_NONE])


@dataclass(frozen=True)
class SomeCV(ClarityValue):
    value: ClarityValue

    def serialize(self) -> bytes:
        return bytes([ClarityType.OPTIONAL_SOME]) + self.value.serialize()


@dataclass(frozen=True)
class StandardPrincipalCV(ClarityValue):
    version: int
    hash_bytes: bytes

    @classmethod
    def from_address(cls, address: str) -> "StandardPrincipalCV":
        version, hash_bytes = c32_address_decode(address)
        return cls(version=version, hash_bytes=hash_bytes)

    def serialize(self) -> bytes:
        if len(self.hash_bytes) != 20:
            raise ValueError(f"Principal hash must be 20 bytes: {self.hash_bytes.hex()}")
        return (
            bytes([ClarityType.PRINCIPAL_STANDARD, self.version]) + self.hash_bytes
        )


@dataclass(frozen=True)
class TupleCV(ClarityValue):
    data: dict[str, ClarityValue] = field(default_factory=dict)

    def serialize(self) -> bytes:
        out = bytearray([ClarityType.TUPLE])
        out += _u32(len(self.data))
        # Keys must be serialized in lexicographic order
        for name in sorted(self.data):
            encoded = name.encode("ascii")
            if not 0 < len(encoded) <= MAX_TUPLE_KEY_LENGTH:
                raise ValueError(f"Invalid tuple key: {name!r}")
            out += bytes([len(encoded)]) + encoded
            out += self.data[name].serialize()
        return bytes(out)


def pox_address_cv(pox_address: PoxAddress) -> TupleCV:
    return TupleCV(
        {
            "version": BufferCV(bytes([pox_address.version])),
            "hashbytes": BufferCV(pox_address.hashbytes),
        }
    )
