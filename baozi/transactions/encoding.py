"""Little-endian Borsh encoding for instruction arguments."""

from __future__ import annotations

import struct
from collections.abc import Iterable

from solders.pubkey import Pubkey

from baozi.core.units import check_u64


class BorshWriter:
    def __init__(self, prefix: bytes = b"") -> None:
        self._buffer = bytearray(prefix)

    def u8(self, value: int) -> "BorshWriter":
        if not 0 <= value <= 0xFF:
            raise ValueError(f"{value} does not fit in u8")
        self._buffer.append(value)
        return self

    def u16(self, value: int) -> "BorshWriter":
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"{value} does not fit in u16")
        self._buffer += struct.pack("<H", value)
        return self

    def u32(self, value: int) -> "BorshWriter":
        self._buffer += struct.pack("<I", value)
        return self

    def u64(self, value: int) -> "BorshWriter":
        self._buffer += struct.pack("<Q", check_u64(value))
        return self

    def i64(self, value: int) -> "BorshWriter":
        self._buffer += struct.pack("<q", value)
        return self

    def bool(self, value: bool) -> "BorshWriter":
        return self.u8(1 if value else 0)

    def string(self, value: str) -> "BorshWriter":
        raw = value.encode("utf-8")
        self.u32(len(raw))
        self._buffer += raw
        return self

    def pubkey(self, value: Pubkey) -> "BorshWriter":
        self._buffer += bytes(value)
        return self

    def fixed(self, raw: bytes) -> "BorshWriter":
        self._buffer += raw
        return self

    def vec_pubkey(self, values: Iterable[Pubkey]) -> "BorshWriter":
        items = list(values)
        self.u32(len(items))
        for item in items:
            self.pubkey(item)
        return self

    def vec_string(self, values: Iterable[str]) -> "BorshWriter":
        items = list(values)
        self.u32(len(items))
        for item in items:
            self.string(item)
        return self

    def option(self, present: bool) -> "BorshWriter":
        """Write the Option tag; the caller writes the payload when present."""

        return self.u8(1 if present else 0)

    def option_i64(self, value: int | None) -> "BorshWriter":
        self.option(value is not None)
        if value is not None:
            self.i64(value)
        return self

    def option_u8(self, value: int | None) -> "BorshWriter":
        self.option(value is not None)
        if value is not None:
            self.u8(value)
        return self

    def option_vec_pubkey(self, values: Iterable[Pubkey] | None) -> "BorshWriter":
        self.option(values is not None)
        if values is not None:
            self.vec_pubkey(values)
        return self

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)


__all__ = ["BorshWriter"]
