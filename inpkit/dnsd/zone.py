"""Zone data: resource records per name and their wire encodings."""

from __future__ import annotations

import ipaddress
import logging
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from inpkit.dnsd.wire import encode_character_string, encode_name, encode_rr

log = logging.getLogger(__name__)


class RecordType(IntEnum):
    """Supported record types."""

    A = 1
    NS = 2
    CNAME = 5
    SOA = 6
    MX = 15
    TXT = 16
    AAAA = 28


class RecordClass(IntEnum):
    """Supported record classes."""

    IN = 1


def _type_name(value: int) -> str:
    try:
        return RecordType(value).name
    except ValueError:
        return ""


def _class_name(value: int) -> str:
    try:
        return RecordClass(value).name
    except ValueError:
        return ""


@dataclass
class SoaRecord:
    """Start of authority of a zone."""

    ttl: int
    rclass: int
    mname: str
    rname: str
    serial: int
    refresh: int
    retry: int
    expire: int
    minimum: int

    @classmethod
    def parse(cls, ttl: int, rclass: int, text: str) -> SoaRecord:
        """Build from ``MNAME RNAME SERIAL REFRESH RETRY EXPIRE MINIMUM``."""
        fields = text.split()
        if len(fields) != 7:
            raise ValueError(f"SOA data needs 7 fields, got {len(fields)}: {text!r}")
        mname, rname, *numbers = fields
        serial, refresh, retry, expire, minimum = (int(n) for n in numbers)
        return cls(ttl, rclass, mname, rname, serial, refresh, retry, expire, minimum)

    def rdata(self) -> bytes:
        """The record data in wire format."""
        numbers = (self.serial, self.refresh, self.retry, self.expire, self.minimum)
        return (
            encode_name(self.mname)
            + encode_name(self.rname)
            + struct.pack("!5I", *(n & 0xFFFFFFFF for n in numbers))
        )


@dataclass
class MxRecord:
    """A mail exchanger with its preference."""

    ttl: int
    rclass: int
    preference: int
    exchange: str

    def rdata(self) -> bytes:
        """The record data in wire format."""
        return struct.pack("!H", self.preference & 0xFFFF) + encode_name(self.exchange)


@dataclass
class _SimpleRecord:
    """An A, AAAA, NS, TXT or CNAME record holding one value."""

    rtype: RecordType
    ttl: int
    rclass: int
    value: str

    def rdata(self) -> bytes:
        if self.rtype is RecordType.A:
            return ipaddress.IPv4Address(self.value).packed
        if self.rtype is RecordType.AAAA:
            return ipaddress.IPv6Address(self.value).packed
        if self.rtype is RecordType.TXT:
            return encode_character_string(self.value)
        return encode_name(self.value)


@dataclass
class Zone:
    """All records owned by one domain name, plus the names beneath it."""

    name: str
    subzones: list[str] = field(default_factory=list)
    soa: SoaRecord | None = None
    mx: list[MxRecord] = field(default_factory=list)
    records: list[_SimpleRecord] = field(default_factory=list)

    @property
    def has_subzone(self) -> bool:
        return bool(self.subzones)

    def _of_type(self, rtype: RecordType) -> list[_SimpleRecord]:
        return [record for record in self.records if record.rtype == rtype]

    def _rr(self, rtype: int, qclass: int, ttl: int, rdata: bytes) -> bytes:
        return encode_rr(self.name, rtype, qclass, ttl, rdata)

    def add_record(self, ttl: int, rclass: int, rtype: int, rdata: str) -> None:
        """Add one record given its data in zone-file text form."""
        try:
            kind = RecordType(rtype)
        except ValueError:
            raise ValueError(f"unsupported record type {rtype!r}") from None
        if kind is RecordType.SOA:
            self.soa = SoaRecord.parse(ttl, rclass, rdata)
        elif kind is RecordType.MX:
            preference, sep, exchange = rdata.partition(" ")
            if not sep:
                raise ValueError(f"MX data needs a preference and a name: {rdata!r}")
            record = MxRecord(ttl, rclass, int(preference), exchange)
            record.rdata()
            self.mx.append(record)
        else:
            record = _SimpleRecord(kind, ttl, rclass, rdata)
            record.rdata()
            self.records.append(record)

    def answer(self, qtype: int, qclass: int) -> tuple[list[bytes], list[str]]:
        """Encoded answers for *qtype*, and names whose addresses may follow."""
        answers: list[bytes] = []
        extra: list[str] = []
        if qtype == RecordType.SOA:
            if self.soa is not None:
                answers.append(self._rr(qtype, qclass, self.soa.ttl, self.soa.rdata()))
        elif qtype == RecordType.MX:
            for record in self.mx:
                answers.append(self._rr(qtype, qclass, record.ttl, record.rdata()))
                extra.append(record.exchange)
        elif qtype in (RecordType.A, RecordType.AAAA, RecordType.NS,
                       RecordType.TXT, RecordType.CNAME):
            for record in self._of_type(RecordType(qtype)):
                answers.append(self._rr(qtype, qclass, record.ttl, record.rdata()))
                if qtype == RecordType.NS:
                    extra.append(record.value)
        else:
            log.info("Unsupported Query Type: %s", qtype)
        if answers and qtype not in (RecordType.SOA, RecordType.NS, RecordType.MX):
            extra.extend(record.value for record in self._of_type(RecordType.NS))
        return answers, extra

    def authority(self, qtype: int, qclass: int) -> list[bytes]:
        """Encoded SOA or NS records of this zone for the authority section."""
        if qtype == RecordType.SOA:
            if self.soa is None:
                return []
            return [self._rr(qtype, qclass, self.soa.ttl, self.soa.rdata())]
        if qtype == RecordType.NS:
            return [
                self._rr(qtype, qclass, record.ttl, record.rdata())
                for record in self._of_type(RecordType.NS)
            ]
        return []

    def additional(self, qtype: int, qclass: int) -> list[bytes]:
        """Encoded A or AAAA records for the additional section."""
        if qtype not in (RecordType.A, RecordType.AAAA):
            return []
        return [
            self._rr(qtype, qclass, record.ttl, record.rdata())
            for record in self._of_type(RecordType(qtype))
        ]

    def describe(self) -> str:
        """A readable listing of the records and subzones of this zone."""

        def rr_line(rtype: int, rclass: int, ttl: int, length: int) -> str:
            return (
                "RR field: \n"
                f"dname: {self.name}, Qtype: {_type_name(rtype)}, "
                f"Class: {_class_name(rclass)}, TTL: {ttl}, Len: {length}"
            )

        lines = [f"Zone_name: {self.name}"]
        cnames = []
        for record in self.records:
            if record.rtype is RecordType.CNAME:
                cnames.append(record)
                continue
            lines.append(rr_line(record.rtype, record.rclass, record.ttl,
                                 len(record.rdata())))
            lines.append(f"Type {record.rtype.name} ans field: \nstr: {record.value}")
        for record in self.mx:
            lines.append(rr_line(RecordType.MX, record.rclass, record.ttl,
                                 len(record.rdata())))
            lines.append(f"MX ans field: \npref: {record.preference}, exg: {record.exchange}")
        if self.soa is not None:
            soa = self.soa
            lines.append(rr_line(RecordType.SOA, soa.rclass, soa.ttl, len(soa.rdata())))
            lines.append(
                "SOA ans field: \n"
                f"m_name: {soa.mname}, r_name: {soa.rname}, ser: {soa.serial}, "
                f"ref: {soa.refresh}, ret: {soa.retry}, exp: {soa.expire}, "
                f"min: {soa.minimum}"
            )
        if cnames:
            first = cnames[0]
            lines.append(rr_line(RecordType.CNAME, first.rclass, first.ttl,
                                 sum(len(r.rdata()) for r in cnames)))
            lines.append("Cnames are: ")
            lines.append("".join(f"{r.value}, " for r in cnames))
        if self.has_subzone:
            lines.append("There are subzone(s) in this zone: ")
            lines.append("".join(f"{name}, " for name in self.subzones))
        else:
            lines.append("This is the leaf node in current zone")
        return "\n".join(lines) + "\n\n\n"


def _record_class(text: str) -> int:
    try:
        return RecordClass[text].value
    except KeyError:
        return 0


def _record_type(text: str) -> int:
    try:
        return RecordType[text].value
    except KeyError:
        return 0


def _load_zone_file(path: Path, root: str, zones: dict[str, Zone]) -> None:
    zones.setdefault(root, Zone(root))
    with open(path, encoding="utf-8") as source:
        lines = source.read().splitlines()
    current = root
    for line in lines[1:]:
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        fields = line.split(",", 4)
        if len(fields) != 5:
            log.warning("malformed zone line in %s: %r", path, line)
            continue
        owner, ttl_text, class_text, type_text, rdata = fields
        if owner != "@":
            current = f"{owner}.{root}"
        if current not in zones:
            zones[current] = Zone(current)
            zones[root].subzones.append(current)
        try:
            zones[current].add_record(int(ttl_text), _record_class(class_text),
                                      _record_type(type_text), rdata)
        except ValueError as exc:
            log.warning("Wrong format in %s: %s", path, exc)


def load_config(path: str | Path) -> tuple[str, dict[str, Zone]]:
    """Read the forwarding address and every zone the configuration names.

    The first line is the address queries outside the zones go to; each
    following line is ``ZONE.,ZONEFILE``. Zone files are found relative to
    the configuration file. Each zone file starts with a line naming the
    zone, followed by ``NAME,TTL,CLASS,TYPE,DATA`` lines, where ``@`` keeps
    the name of the previous line.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as source:
        lines = source.read().splitlines()
    if not lines:
        raise ValueError(f"configuration {path} is empty")
    forward_ip = lines[0].strip()
    zones: dict[str, Zone] = {}
    for line in lines[1:]:
        line = line.rstrip(" \n\r")
        if not line:
            continue
        root, sep, zone_file = line.partition(",")
        if not sep:
            raise ValueError(f"configuration line needs a zone and a file: {line!r}")
        _load_zone_file(path.parent / zone_file, root, zones)
    return forward_ip, zones