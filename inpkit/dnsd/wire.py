"""DNS wire-format helpers: names, strings, questions, headers and records."""

from __future__ import annotations

import struct
from dataclasses import dataclass

HEADER_SIZE = 12
RESPONSE_FLAGS = 0x8580
MAX_LABEL = 63
MAX_CHARACTER_STRING = 255

_HEADER = struct.Struct("!HHHHHH")
_RR_FIXED = struct.Struct("!HHIH")


@dataclass(frozen=True)
class Question:
    """The first question of a query.

    ``name`` carries a trailing dot after every label; ``end`` is the offset
    just past the question's class field.
    """

    name: str
    qtype: int
    qclass: int
    end: int


def encode_name(name: str) -> bytes:
    """Encode a dotted domain name as length-prefixed labels ending in zero."""
    stripped = name[:-1] if name.endswith(".") else name
    if not stripped:
        return b"\x00"
    out = bytearray()
    for label in stripped.split("."):
        raw = label.encode("latin-1")
        if not raw:
            raise ValueError(f"empty label in domain name {name!r}")
        if len(raw) > MAX_LABEL:
            raise ValueError(f"label {label!r} longer than {MAX_LABEL} bytes")
        out.append(len(raw))
        out += raw
    out.append(0)
    return bytes(out)


def encode_character_string(text: str) -> bytes:
    """Encode *text* as a DNS character-string: one length byte, then the bytes."""
    raw = text.encode("latin-1")
    if len(raw) > MAX_CHARACTER_STRING:
        raise ValueError(f"character string longer than {MAX_CHARACTER_STRING} bytes")
    return bytes([len(raw)]) + raw


def parse_question(packet: bytes) -> Question:
    """Read the name, type and class of the question following the header."""
    if len(packet) < HEADER_SIZE:
        raise ValueError("packet shorter than a DNS header")
    labels = []
    pos = HEADER_SIZE
    while True:
        if pos >= len(packet):
            raise ValueError("question name truncated")
        length = packet[pos]
        if length == 0:
            break
        if length & 0xC0:
            raise ValueError("compressed names are not supported in the question")
        label = packet[pos + 1:pos + 1 + length]
        if len(label) < length:
            raise ValueError("question name truncated")
        labels.append(label.decode("latin-1") + ".")
        pos += 1 + length
    if pos + 5 > len(packet):
        raise ValueError("question type and class truncated")
    qtype, qclass = struct.unpack_from("!HH", packet, pos + 1)
    return Question(name="".join(labels), qtype=qtype, qclass=qclass, end=pos + 5)


def build_header(packet: bytes, ancount: int, nscount: int, arcount: int) -> bytes:
    """Build a response header keeping the query's id and question count.

    *nscount* counts authority records and *arcount* additional records.
    """
    if len(packet) < HEADER_SIZE:
        raise ValueError("packet shorter than a DNS header")
    ident, _flags, qdcount = struct.unpack_from("!HHH", packet, 0)
    return _HEADER.pack(ident, RESPONSE_FLAGS, qdcount, ancount, nscount, arcount)


def encode_rr(name: str, rtype: int, rclass: int, ttl: int, rdata: bytes) -> bytes:
    """Encode one resource record: owner name, fixed fields and *rdata*."""
    rdata = bytes(rdata)
    return (
        encode_name(name)
        + _RR_FIXED.pack(int(rtype), int(rclass), int(ttl) & 0xFFFFFFFF, len(rdata))
        + rdata
    )