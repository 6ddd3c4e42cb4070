import logging
import struct
import zlib
from dataclasses import dataclass

from gitclone.errors import InvalidPackError
from gitclone.models.objects import PackObjectType, RawPackRecord

__all__ = ["PackHeader", "parse_pack", "read_varint", "read_pack_header"]

logger = logging.getLogger(__name__)

PACK_SIGNATURE = b"PACK"
SUPPORTED_VERSIONS = (1, 2)
HEADER_SIZE = 12
RAW_ID_SIZE = 20
INFLATE_CHUNK_SIZE = 64 * 1024

TYPE_MASK = 0b0111_0000
CONTINUATION_BIT = 0b1000_0000


@dataclass(frozen=True)
class PackHeader:
    version: int
    num_objects: int

    @classmethod
    def from_bytes(cls, data: bytes):
        version, num_objects = struct.unpack(">II", data[4:HEADER_SIZE])
        return cls(version, num_objects)


def read_pack_header(data: bytes) -> PackHeader:
    if len(data) < HEADER_SIZE:
        raise InvalidPackError(f"Pack stream too short: {len(data)} bytes")
    if data[:4] != PACK_SIGNATURE:
        raise InvalidPackError(f"Invalid pack signature {bytes(data[:4])!r}")
    header = PackHeader.from_bytes(data)
    if header.version not in SUPPORTED_VERSIONS:
        raise InvalidPackError(f"Unsupported pack version {header.version}")
    return header


def read_varint(data: bytes, offset: int, shift: int = 4) -> tuple[int, int]:
    """Decode a little-endian base-128 size starting at ``offset``.

    The first byte contributes its low ``shift`` bits (4 for pack object
    headers, whose upper bits carry the type tag; 7 when ``shift`` is 0, as
    in delta headers). Every following byte contributes its low 7 bits.

    Returns the value and the offset just past the last byte read.
    """
    try:
        byte = data[offset]
        offset += 1
        if shift:
            size = byte & ((1 << shift) - 1)
        else:
            size = byte & 0x7F
            shift = 7
        while byte & CONTINUATION_BIT:
            byte = data[offset]
            offset += 1
            size |= (byte & 0x7F) << shift
            shift += 7
    except IndexError:
        raise InvalidPackError(f"Truncated size field at byte {offset}") from None
    return size, offset


def read_base_offset(data: bytes, offset: int) -> tuple[int, int]:
    """Decode the big-endian relative offset that follows an OFS_DELTA header."""
    try:
        byte = data[offset]
        offset += 1
        value = byte & 0x7F
        while byte & CONTINUATION_BIT:
            byte = data[offset]
            offset += 1
            value = ((value + 1) << 7) | (byte & 0x7F)
    except IndexError:
        raise InvalidPackError(f"Truncated delta base offset at byte {offset}") from None
    return value, offset


def inflate(data: memoryview, offset: int) -> tuple[bytes, int]:
    """Inflate one zlib stream starting at ``offset``.

    Returns the content and the number of compressed bytes consumed, which
    is where the next record header starts.
    """
    decompressor = zlib.decompressobj()
    chunks = []
    position = offset
    try:
        while not decompressor.eof and position < len(data):
            chunk = data[position : position + INFLATE_CHUNK_SIZE]
            chunks.append(decompressor.decompress(chunk))
            position += len(chunk)
    except zlib.error as exc:
        raise InvalidPackError(f"Corrupt zlib stream at byte {offset}: {exc}") from exc
    if not decompressor.eof:
        raise InvalidPackError(f"Truncated zlib stream at byte {offset}")
    return b"".join(chunks), position - offset - len(decompressor.unused_data)


def read_record(data: memoryview, offset: int) -> tuple[RawPackRecord, int]:
    start = offset
    if offset >= len(data):
        raise InvalidPackError(f"Pack stream ends before record at byte {offset}")
    raw_type = (data[offset] & TYPE_MASK) >> 4
    try:
        type_ = PackObjectType(raw_type)
    except ValueError:
        raise InvalidPackError(
            f"Invalid pack object type {raw_type} at byte {offset}"
        ) from None
    declared_size, offset = read_varint(data, offset)

    base_reference = None
    match type_:
        case PackObjectType.REF_DELTA:
            raw_id = bytes(data[offset : offset + RAW_ID_SIZE])
            if len(raw_id) != RAW_ID_SIZE:
                raise InvalidPackError(f"Truncated delta base id at byte {offset}")
            base_reference = raw_id.hex()
            offset += RAW_ID_SIZE
        case PackObjectType.OFS_DELTA:
            relative, offset = read_base_offset(data, offset)
            base_reference = start - relative
            if relative == 0 or base_reference < HEADER_SIZE:
                raise InvalidPackError(
                    f"Delta at byte {start} points outside the pack ({relative})"
                )

    payload, consumed = inflate(data, offset)
    record = RawPackRecord(
        type=type_,
        declared_size=declared_size,
        payload=payload,
        offset=start,
        base_reference=base_reference,
    )
    return record, offset + consumed


def parse_pack(data: bytes) -> tuple[int, list[RawPackRecord]]:
    """Split a pack stream into its records, deltas still unresolved."""
    header = read_pack_header(data)
    logger.debug(
        "Pack version %d with %d objects", header.version, header.num_objects
    )

    view = memoryview(data)
    offset = HEADER_SIZE
    records = []
    for _ in range(header.num_objects):
        record, offset = read_record(view, offset)
        if len(record.payload) != record.declared_size:
            logger.debug(
                "Record at byte %d declared %d bytes, inflated to %d",
                record.offset,
                record.declared_size,
                len(record.payload),
            )
        records.append(record)
    return header.version, records
