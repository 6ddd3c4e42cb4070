import logging

import pytest

from gitclone.errors import DeltaError
from gitclone.models.delta import apply_delta, resolve_deltas
from gitclone.models.objects import ObjectKind, PackObjectType, RawPackRecord
from gitclone.models.pack import parse_pack
from packutils import build_pack, copy, delta, encode_base_offset, insert, record, sha

BASE = b"hello world\n"


def test_insert_then_copy():
    instructions = delta(BASE, 12, insert(b"HELLO"), copy(5, 7))
    assert apply_delta(BASE, instructions) == b"HELLO world\n"


def test_copy_with_multi_byte_offset_and_size():
    base = bytes(range(256)) * 300
    instructions = delta(base, 0x0201, copy(0x010203, 0x0201))
    assert instructions[len(instructions) - 6] == 0b1011_0111
    assert apply_delta(base, instructions) == base[0x010203 : 0x010203 + 0x0201]


def test_copy_reads_only_flagged_offset_bytes():
    # offset bytes 0 and 1 present, no size bytes
    instructions = delta(BASE, 12, bytes([0b1000_0011, 0x06, 0x00]))
    assert apply_delta(BASE, instructions) == b"world\n"


def test_copy_without_size_copies_64k():
    base = b"a" * 0x10000 + b"tail"
    instructions = delta(base, 0x10000, bytes([0x80]))
    assert apply_delta(base, instructions) == b"a" * 0x10000


def test_reserved_opcode():
    with pytest.raises(DeltaError):
        apply_delta(BASE, delta(BASE, 1, b"\x00"))


@pytest.mark.parametrize("tail", [bytes([0x05]) + b"abc", bytes([0x91, 0x00])])
def test_truncated_instruction(tail):
    with pytest.raises(DeltaError):
        apply_delta(BASE, delta(BASE, 5, tail))


def test_resolve_ref_delta():
    instructions = delta(BASE, 12, insert(b"HELLO"), copy(5, 7))
    data = build_pack(
        record(3, BASE),
        record(7, instructions, base=bytes.fromhex(sha("blob", BASE))),
    )
    objects = resolve_deltas(parse_pack(data)[1])

    resolved = objects[sha("blob", b"HELLO world\n")]
    assert resolved.kind == ObjectKind.BLOB
    assert resolved.content == b"HELLO world\n"
    assert set(objects) == {sha("blob", BASE), resolved.id}


def test_resolve_ofs_delta_chain():
    first = record(2, b"")
    second_offset = 12 + len(first)
    second = record(6, delta(b"", 3, insert(b"abc")), base=encode_base_offset(second_offset - 12))
    third_offset = second_offset + len(second)
    third = record(
        6,
        delta(b"abc", 6, copy(0, 3), insert(b"def")),
        base=encode_base_offset(third_offset - second_offset),
    )
    objects = resolve_deltas(parse_pack(build_pack(first, second, third))[1])

    assert {obj.content for obj in objects.values()} == {b"", b"abc", b"abcdef"}
    assert all(obj.kind == ObjectKind.TREE for obj in objects.values())


def test_delta_before_its_base_in_stream():
    target = b"HELLO world\n"
    records = [
        RawPackRecord(
            type=PackObjectType.REF_DELTA,
            declared_size=0,
            payload=delta(target, 12, copy(0, 12)),
            offset=40,
            base_reference=sha("blob", target),
        ),
        RawPackRecord(
            type=PackObjectType.REF_DELTA,
            declared_size=0,
            payload=delta(BASE, 12, insert(b"HELLO"), copy(5, 7)),
            offset=60,
            base_reference=sha("blob", BASE),
        ),
        RawPackRecord(
            type=PackObjectType.BLOB, declared_size=12, payload=BASE, offset=12
        ),
    ]
    objects = resolve_deltas(records)
    assert sha("blob", target) in objects


def test_missing_base_is_skipped(caplog):
    missing = "f" * 40
    data = build_pack(
        record(3, BASE),
        record(7, delta(BASE, 1, insert(b"x")), base=bytes.fromhex(missing)),
    )
    with caplog.at_level(logging.WARNING, logger="gitclone.models.delta"):
        objects = resolve_deltas(parse_pack(data)[1])

    assert list(objects) == [sha("blob", BASE)]
    assert missing in caplog.text
