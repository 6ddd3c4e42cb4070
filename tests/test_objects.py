import hashlib

import pytest

from gitclone.errors import CorruptObjectError
from gitclone.models.objects import (
    GitObject,
    ObjectKind,
    PackObjectType,
    compute_id,
    parse_tree_content,
)
from packutils import tree_entry


@pytest.mark.parametrize(
    "kind, content, expected",
    [
        ("blob", b"hello world\n", "3b18e512dba79e4c8300dd08aeb37f8e728b8dad"),
        ("blob", b"hello\n", "ce013625030ba8dba906f756967f9e9ca394464a"),
        ("tree", b"", "4b825dc642cb6eb9a060e54bf8d69288fbee4904"),
    ],
)
def test_compute_id(kind, content, expected):
    assert compute_id(kind, content) == expected
    assert GitObject(kind=ObjectKind(kind), content=content).id == expected


def test_id_is_derived_from_content():
    obj = GitObject(kind=ObjectKind.TAG, content=b"object x\n")
    assert obj.id == hashlib.sha1(b"tag 9\0object x\n").hexdigest()
    assert obj.serialize() == b"tag 9\0object x\n"
    with pytest.raises(TypeError):
        GitObject(kind=ObjectKind.TAG, content=b"", id="0" * 40)


@pytest.mark.parametrize(
    "type_, kind",
    [
        (PackObjectType.COMMIT, ObjectKind.COMMIT),
        (PackObjectType.TREE, ObjectKind.TREE),
        (PackObjectType.BLOB, ObjectKind.BLOB),
        (PackObjectType.TAG, ObjectKind.TAG),
    ],
)
def test_pack_type_kind(type_, kind):
    assert not type_.is_delta
    assert type_.kind == kind


@pytest.mark.parametrize("type_", [PackObjectType.OFS_DELTA, PackObjectType.REF_DELTA])
def test_delta_types_have_no_kind(type_):
    assert type_.is_delta
    with pytest.raises(ValueError):
        type_.kind


def test_parse_tree_content():
    # 0x0a inside the raw id must not end the entry
    raw_id = "0a" * 20
    content = tree_entry("100644", "file.txt", raw_id) + tree_entry("40000", "dir", "1b" * 20)
    entries = list(parse_tree_content(content))
    assert [e.file_name for e in entries] == [b"file.txt", b"dir"]
    assert entries[0].hash == raw_id
    assert not entries[0].is_tree
    assert entries[1].is_tree


def test_parse_tree_content_rejects_garbage():
    with pytest.raises(CorruptObjectError):
        list(parse_tree_content(b"100644 truncated\0abc"))
