from gitclone.models.clone import CloneReport, GitClone, RefResult
from gitclone.models.git import Git
from gitclone.models.objects import GitObject, ObjectKind, Ref
from gitclone.models.store import ObjectStore

__all__ = [
    "CloneReport",
    "Git",
    "GitClone",
    "GitObject",
    "ObjectKind",
    "ObjectStore",
    "Ref",
    "RefResult",
]
