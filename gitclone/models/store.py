import logging
import pathlib
import zlib
from os import PathLike

from gitclone.errors import CorruptObjectError
from gitclone.models.objects import NULL_BYTE, GitObject, ObjectKind

__all__ = ["ObjectStore", "init_repository"]

logger = logging.getLogger(__name__)

REPOSITORY_DIRS = ("objects", "branches", "info", "logs", "refs", "hooks")


def init_repository(
    working_directory: PathLike = ".", *, default_branch: str = "master"
) -> pathlib.Path:
    """Create the .git skeleton under ``working_directory`` and return its path."""
    git_dir = pathlib.Path(working_directory) / ".git"
    for name in REPOSITORY_DIRS:
        (git_dir / name).mkdir(parents=True, exist_ok=True)
    (git_dir / "HEAD").write_text(f"ref: refs/heads/{default_branch}")
    logger.debug("Initialized repository in %s", git_dir)
    return git_dir


class ObjectStore:
    """Loose objects sharded as ``objects/<id[:2]>/<id[2:]>``."""

    def __init__(self, git_dir: PathLike = ".git"):
        self.git_dir = pathlib.Path(git_dir)
        self.objects_folder = self.git_dir / "objects"

    def path_for(self, object_id: str) -> pathlib.Path:
        return self.objects_folder / object_id[:2] / object_id[2:]

    def contains(self, object_id: str) -> bool:
        return self.path_for(object_id).is_file()

    def write(self, obj: GitObject) -> str:
        if self.contains(obj.id):
            # same id means same bytes
            return obj.id
        path = self.path_for(obj.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(zlib.compress(obj.serialize()))
        return obj.id

    def put(self, kind: ObjectKind | str, content: bytes) -> str:
        return self.write(GitObject(kind=ObjectKind(kind), content=content))

    def read(self, object_id: str) -> GitObject | None:
        path = self.path_for(object_id)
        if not path.is_file():
            return None
        try:
            data = zlib.decompress(path.read_bytes())
        except zlib.error as exc:
            raise CorruptObjectError(f"{object_id}: {exc}") from exc

        header, sep, content = data.partition(NULL_BYTE)
        kind, _, size = header.decode(errors="replace").partition(" ")
        if not sep or kind not in list(ObjectKind):
            raise CorruptObjectError(f"{object_id}: bad header {header!r}")
        if not size.isdigit() or int(size) != len(content):
            raise CorruptObjectError(
                f"{object_id}: header size {size} does not match {len(content)}"
            )
        return GitObject(kind=ObjectKind(kind), content=content)

    def get(self, object_id: str) -> bytes | None:
        obj = self.read(object_id)
        return None if obj is None else obj.content

    def write_all(self, objects) -> int:
        count = 0
        for obj in objects:
            self.write(obj)
            count += 1
        logger.debug("Wrote %d objects to %s", count, self.objects_folder)
        return count
