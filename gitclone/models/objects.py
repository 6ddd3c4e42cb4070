import binascii
import hashlib
import re
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum, auto
from typing import Iterator

from gitclone.errors import CorruptObjectError

__all__ = [
    "ObjectKind",
    "PackObjectType",
    "GitObject",
    "RawPackRecord",
    "TreeEntry",
    "Ref",
    "compute_id",
    "parse_tree_content",
]

NULL_BYTE = b"\x00"


class ObjectKind(StrEnum):
    COMMIT = auto()
    TREE = auto()
    BLOB = auto()
    TAG = auto()

    @property
    def mode(self):
        match self:
            case ObjectKind.BLOB:
                return "100644"
            case ObjectKind.TREE:
                return "40000"
            case _:
                raise ValueError(f"No tree entry mode for {self}")


class PackObjectType(IntEnum):
    COMMIT = 1
    TREE = 2
    BLOB = 3
    TAG = 4
    OFS_DELTA = 6
    REF_DELTA = 7

    @property
    def is_delta(self) -> bool:
        return self in (PackObjectType.OFS_DELTA, PackObjectType.REF_DELTA)

    @property
    def kind(self) -> ObjectKind:
        if self.is_delta:
            raise ValueError(f"{self.name} records have no kind until resolved")
        return ObjectKind(self.name.lower())


def compute_id(kind: str, content: bytes) -> str:
    """Compute the SHA-1 object id of ``content`` stored as ``kind``."""
    header = f"{kind} {len(content)}".encode() + NULL_BYTE
    return hashlib.sha1(header + content).hexdigest()


@dataclass(frozen=True, kw_only=True)
class GitObject:
    kind: ObjectKind
    content: bytes
    id: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "id", compute_id(self.kind, self.content))

    def serialize(self) -> bytes:
        return f"{self.kind} {len(self.content)}".encode() + NULL_BYTE + self.content


@dataclass(frozen=True, kw_only=True)
class RawPackRecord:
    type: PackObjectType
    declared_size: int
    payload: bytes
    offset: int = 0
    # ObjectId for REF_DELTA, absolute pack offset of the base for OFS_DELTA
    base_reference: str | int | None = None


@dataclass(frozen=True, kw_only=True)
class TreeEntry:
    mode: bytes
    file_name: bytes
    raw_hash: bytes

    @property
    def hash(self):
        return binascii.hexlify(self.raw_hash).decode()

    @property
    def is_tree(self) -> bool:
        return self.mode.lstrip(b"0") == b"40000"

    @property
    def is_executable(self) -> bool:
        return self.mode == b"100755"

    @property
    def is_gitlink(self) -> bool:
        return self.mode == b"160000"


@dataclass(frozen=True)
class Ref:
    name: str
    id: str


TREE_ENTRY_PATTERN = re.compile(
    rb"""
    (?P<mode>\d+)
    \s
    (?P<file_name>[^\x00]+)
    \x00
    (?P<raw_hash>.{20})
    """,
    re.VERBOSE | re.DOTALL,
)


def parse_tree_content(content: bytes) -> Iterator[TreeEntry]:
    """Yield the entries of a tree object's content in stored order."""
    position = 0
    while position < len(content):
        match = TREE_ENTRY_PATTERN.match(content, position)
        if match is None:
            raise CorruptObjectError(f"Malformed tree entry at byte {position}")
        yield TreeEntry(**match.groupdict())
        position = match.end()
