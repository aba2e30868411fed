"""
Length-prefixed text messages, byte compatible with Java's
DataOutputStream.writeUTF / DataInputStream.readUTF.

A message is an unsigned 16-bit big-endian byte count followed by the text in
*modified* UTF-8: NUL is written as two bytes and characters outside the BMP
are written as a UTF-16 surrogate pair, three bytes per surrogate.
"""

from __future__ import annotations

import struct

# === Constants ===

MAX_MESSAGE_LEN = 0xFFFF  # uint16 length prefix

_HDR_FMT = "!H"  # payload length
HDR_LEN = struct.calcsize(_HDR_FMT)


class UTFDataFormatError(ValueError):
    """Text that cannot be carried in, or read back from, one message."""


def _code_units(text: str) -> tuple[int, ...]:
    raw = text.encode("utf-16-be", "surrogatepass")
    return struct.unpack(f">{len(raw) // 2}H", raw)


# ------------------------------------------------------------------
# (De)serialisation helpers
# ------------------------------------------------------------------

def encode_utf(text: str) -> bytes:
    """Encode *text* as a message payload (no length header)."""
    out = bytearray()
    for unit in _code_units(text):
        if 0x0001 <= unit <= 0x007F:
            out.append(unit)
        elif unit <= 0x07FF:
            out.append(0xC0 | (unit >> 6))
            out.append(0x80 | (unit & 0x3F))
        else:
            out.append(0xE0 | (unit >> 12))
            out.append(0x80 | ((unit >> 6) & 0x3F))
            out.append(0x80 | (unit & 0x3F))

    if len(out) > MAX_MESSAGE_LEN:
        raise UTFDataFormatError(f"encoded string too long: {len(out)} bytes")
    return bytes(out)


def decode_utf(data: bytes) -> str:
    """Decode a message payload produced by :func:`encode_utf`."""
    units = []
    pos = 0
    end = len(data)
    while pos < end:
        c = data[pos]
        top = c >> 4
        if top <= 7:
            units.append(c)
            pos += 1
        elif top in (12, 13):
            if pos + 2 > end:
                raise UTFDataFormatError("malformed input: partial character at end")
            c2 = data[pos + 1]
            if c2 & 0xC0 != 0x80:
                raise UTFDataFormatError(f"malformed input around byte {pos + 2}")
            units.append(((c & 0x1F) << 6) | (c2 & 0x3F))
            pos += 2
        elif top == 14:
            if pos + 3 > end:
                raise UTFDataFormatError("malformed input: partial character at end")
            c2, c3 = data[pos + 1], data[pos + 2]
            if c2 & 0xC0 != 0x80 or c3 & 0xC0 != 0x80:
                raise UTFDataFormatError(f"malformed input around byte {pos + 2}")
            units.append(((c & 0x0F) << 12) | ((c2 & 0x3F) << 6) | (c3 & 0x3F))
            pos += 3
        else:
            # 10xx xxxx and 1111 xxxx never start a character
            raise UTFDataFormatError(f"malformed input around byte {pos}")

    # pairs of surrogates collapse into one character, lone ones are kept
    raw = struct.pack(f">{len(units)}H", *units)
    return raw.decode("utf-16-be", "surrogatepass")


def pack_message(text: str) -> bytes:
    payload = encode_utf(text)
    return struct.pack(_HDR_FMT, len(payload)) + payload


def unpack_length(header: bytes) -> int:
    if len(header) != HDR_LEN:
        raise UTFDataFormatError("message header must be 2 bytes")
    (length,) = struct.unpack(_HDR_FMT, header)
    return length
