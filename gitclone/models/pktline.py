import re
from typing import Iterator

from gitclone.errors import ProtocolError
from gitclone.models.objects import Ref

__all__ = [
    "FLUSH_PKT",
    "PktLineReader",
    "format_pkt_line",
    "parse_ref_advertisement",
]

FLUSH_PKT = b"0000"
SERVICE_HEADER = re.compile(rb"^[0-9a-fA-F]{4}#")
PKT_LENGTH = re.compile(rb"[0-9a-fA-F]{4}")
OBJECT_ID = re.compile(r"^[0-9a-f]{40}$")
ZERO_ID = "0" * 40


def format_pkt_line(payload: str | bytes) -> bytes:
    if isinstance(payload, str):
        payload = payload.encode()

    # Length includes the 4-byte prefix itself
    length = len(payload) + 4
    return f"{length:04x}".encode() + payload


class PktLineReader:
    """Iterate over pkt-line payloads; a flush packet yields ``None``."""

    def __init__(self, data: bytes):
        self.data = data
        self.position = 0

    def __iter__(self) -> Iterator[bytes | None]:
        return self

    def __next__(self) -> bytes | None:
        data, start = self.data, self.position
        if start >= len(data):
            raise StopIteration

        prefix = data[start : start + 4]
        if not PKT_LENGTH.fullmatch(prefix):
            raise ProtocolError(f"Invalid pkt-line length {prefix!r} at byte {start}")
        length = int(prefix, 16)

        if length == 0:
            self.position = start + 4
            return None
        if length < 4 or start + length > len(data):
            raise ProtocolError(f"pkt-line of length {length} at byte {start} overruns")
        self.position = start + length
        return data[start + 4 : start + length]


def parse_ref_advertisement(data: bytes) -> tuple[list[Ref], list[str]]:
    """Parse an ``info/refs`` response body into refs and server capabilities.

    The body must open with the ``# service=git-upload-pack`` announcement.
    """
    if not SERVICE_HEADER.match(data[:5]):
        raise ProtocolError(f"Invalid server response header {data[:5]!r}")

    refs = []
    capabilities = []
    for payload in PktLineReader(data):
        if payload is None or payload.startswith(b"#"):
            continue
        line = payload.rstrip(b"\n").decode(errors="replace")
        ref_part, _, capabilities_part = line.partition("\x00")
        capabilities.extend(capabilities_part.split())

        sha = ref_part[:40]
        if not OBJECT_ID.match(sha):
            raise ProtocolError(f"Invalid object id in ref line {ref_part!r}")
        if sha == ZERO_ID:
            # empty repository placeholder ("capabilities^{}")
            continue
        refs.append(Ref(name=ref_part.split()[-1], id=sha))
    return refs, capabilities
