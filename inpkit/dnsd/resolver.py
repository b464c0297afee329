"""Answer DNS queries from loaded zones."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Mapping

from inpkit.dnsd.wire import HEADER_SIZE, build_header, encode_rr, parse_question
from inpkit.dnsd.zone import RecordType, Zone

log = logging.getLogger(__name__)

EMBEDDED_ADDRESS_TTL = 1


def _embedded_address(name: str) -> ipaddress.IPv4Address | None:
    """The IPv4 address spelled by the first four labels of *name*, if any."""
    parts = name.split(".")
    if len(parts) < 5:
        return None
    try:
        return ipaddress.IPv4Address(".".join(parts[:4]))
    except ValueError:
        return None


class Resolver:
    """Build responses for queries that fall inside the known zones."""

    def __init__(self, zones: Mapping[str, Zone]) -> None:
        self.zones = dict(zones)

    def find_root_zone(self, name: str) -> str:
        """Return the shortest suffix of *name* that is a known zone, or ''."""
        if not name:
            return ""
        dotted = name.endswith(".")
        if dotted and "." in self.zones:
            return "."
        body = name[:-1] if dotted else name
        labels = body.split(".")
        tail = "." if dotted else ""
        for start in range(len(labels) - 1, -1, -1):
            candidate = ".".join(labels[start:]) + tail
            if candidate in self.zones:
                return candidate
        return ""

    def resolve(self, packet: bytes) -> bytes | None:
        """Return the response to *packet*, or None when it must be forwarded.

        Raises ValueError when the packet's question cannot be parsed.
        """
        question = parse_question(packet)
        root_zone = self.zones.get(self.find_root_zone(question.name))
        if root_zone is None:
            return None
        echoed = packet[HEADER_SIZE:question.end]

        address = _embedded_address(question.name)
        if address is not None:
            record = encode_rr(question.name, RecordType.A, question.qclass,
                               EMBEDDED_ADDRESS_TTL, address.packed)
            return build_header(packet, 1, 0, 0) + echoed + record

        qtype, qclass = question.qtype, question.qclass
        node = self.zones.get(question.name)
        answers, extra = node.answer(qtype, qclass) if node is not None else ([], [])
        authority: list[bytes] = []
        additional: list[bytes] = []
        if not answers:
            authority = root_zone.authority(RecordType.SOA, qclass)
        else:
            if qtype != RecordType.NS:
                authority = root_zone.authority(RecordType.NS, qclass)
            if qtype in (RecordType.NS, RecordType.MX):
                for target in extra:
                    zone = self.zones.get(target)
                    if zone is None:
                        log.warning("additional name %s not found in zones", target)
                        continue
                    additional += zone.additional(RecordType.A, qclass)
                    additional += zone.additional(RecordType.AAAA, qclass)

        header = build_header(packet, len(answers), len(authority), len(additional))
        return header + echoed + b"".join(answers + authority + additional)