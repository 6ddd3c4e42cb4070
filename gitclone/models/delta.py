import logging

from gitclone.errors import DeltaError, InvalidPackError, MissingBaseError
from gitclone.models.objects import GitObject, PackObjectType, RawPackRecord
from gitclone.models.pack import read_varint

__all__ = ["apply_delta", "resolve_deltas"]

logger = logging.getLogger(__name__)

COPY_BIT = 0b1000_0000
OFFSET_BITS = (0b0000_0001, 0b0000_0010, 0b0000_0100, 0b0000_1000)
SIZE_BITS = (0b0001_0000, 0b0010_0000, 0b0100_0000)
# a copy whose size bytes are all absent (or zero) means 64 KiB
DEFAULT_COPY_SIZE = 0x10000


def _read_copy_operand(delta: bytes, offset: int, cmd: int, bits) -> tuple[int, int]:
    value = 0
    for i, mask in enumerate(bits):
        if cmd & mask:
            value |= delta[offset] << (8 * i)
            offset += 1
    return value, offset


def apply_delta(base: bytes, delta: bytes) -> bytes:
    """Apply delta instructions to base object."""
    try:
        _source_size, offset = read_varint(delta, 0, shift=0)
        _target_size, offset = read_varint(delta, offset, shift=0)
    except InvalidPackError as exc:
        raise DeltaError(f"Truncated delta header: {exc}") from exc

    result = bytearray()
    try:
        while offset < len(delta):
            cmd = delta[offset]
            offset += 1

            if cmd & COPY_BIT:
                copy_offset, offset = _read_copy_operand(delta, offset, cmd, OFFSET_BITS)
                copy_size, offset = _read_copy_operand(delta, offset, cmd, SIZE_BITS)
                if copy_size == 0:
                    copy_size = DEFAULT_COPY_SIZE
                result += base[copy_offset : copy_offset + copy_size]
            elif cmd:
                literal = delta[offset : offset + cmd]
                if len(literal) != cmd:
                    raise DeltaError(f"Insert of {cmd} bytes runs past end of delta")
                result += literal
                offset += cmd
            else:
                raise DeltaError(f"Reserved delta opcode 0 at byte {offset - 1}")
    except IndexError:
        raise DeltaError(f"Copy instruction truncated at byte {offset}") from None

    return bytes(result)


def resolve_deltas(records: list[RawPackRecord]) -> dict[str, GitObject]:
    """Materialize every record, resolving deltas against their bases.

    Bases are looked up by id for REF_DELTA and by pack offset for OFS_DELTA,
    so the order of records in the pack does not matter. Deltas whose base
    never shows up are dropped with a warning.
    """
    objects: dict[str, GitObject] = {}
    by_offset: dict[int, GitObject] = {}
    pending = []

    for record in records:
        if record.type.is_delta:
            pending.append(record)
            continue
        obj = GitObject(kind=record.type.kind, content=record.payload)
        objects[obj.id] = obj
        by_offset[record.offset] = obj

    while pending:
        unresolved = []
        for record in pending:
            if record.type == PackObjectType.REF_DELTA:
                base = objects.get(record.base_reference)
            else:
                base = by_offset.get(record.base_reference)
            if base is None:
                unresolved.append(record)
                continue

            obj = GitObject(kind=base.kind, content=apply_delta(base.content, record.payload))
            objects[obj.id] = obj
            by_offset[record.offset] = obj

        if len(unresolved) == len(pending):
            break
        pending = unresolved

    for record in pending:
        logger.warning(
            "Skipping delta at byte %d: %s",
            record.offset,
            MissingBaseError(record.base_reference),
        )

    logger.debug(
        "Resolved %d objects from %d records (%d skipped)",
        len(objects),
        len(records),
        len(pending),
    )
    return objects
