import logging
import os
import pathlib
from collections.abc import Mapping
from os import PathLike

from gitclone.errors import MissingObjectError
from gitclone.models.objects import GitObject, ObjectKind, parse_tree_content

__all__ = ["checkout", "parse_commit", "peel"]

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755
FILE_MODE = 0o644


def parse_commit(content: bytes) -> dict[str, list[str]]:
    """Collect the header fields of a commit or tag, keyed by field name.

    Stops at the blank line separating the headers from the message.
    """
    headers: dict[str, list[str]] = {}
    for line in content.decode(errors="replace").split("\n"):
        if not line:
            break
        if line.startswith(" "):
            # continuation of a multi-line header such as gpgsig
            continue
        key, _, value = line.partition(" ")
        headers.setdefault(key, []).append(value)
    return headers


def peel(obj: GitObject, objects: Mapping[str, GitObject]) -> GitObject:
    """Follow annotated tags down to the object they point at."""
    while obj.kind == ObjectKind.TAG:
        target_id = parse_commit(obj.content).get("object", [""])[0]
        target = objects.get(target_id)
        if target is None:
            raise MissingObjectError(target_id, f"target of tag {obj.id}")
        obj = target
    return obj


def checkout(
    commit: GitObject, objects: Mapping[str, GitObject], working_directory: PathLike
) -> int:
    """Write the tree(s) of ``commit`` into ``working_directory``.

    Returns the number of files written.
    """
    work_dir = pathlib.Path(working_directory)
    work_dir.mkdir(parents=True, exist_ok=True)

    stack = []
    for tree_id in parse_commit(commit.content).get("tree", []):
        tree = objects.get(tree_id)
        if tree is None:
            raise MissingObjectError(tree_id, f"tree of commit {commit.id}")
        stack.append((tree, work_dir))

    written = 0
    while stack:
        tree, base_path = stack.pop()
        for entry in parse_tree_content(tree.content):
            path = base_path / os.fsdecode(entry.file_name)
            if entry.is_gitlink:
                logger.warning("Skipping submodule %s at %s", entry.hash, path)
                continue

            child = objects.get(entry.hash)
            if child is None:
                raise MissingObjectError(entry.hash, str(path))

            if child.kind == ObjectKind.TREE:
                path.mkdir(parents=True, exist_ok=True)
                stack.append((child, path))
            else:
                path.write_bytes(child.content)
                # an earlier ref may have left a different mode on this path
                path.chmod(EXECUTABLE_MODE if entry.is_executable else FILE_MODE)
                written += 1

    logger.debug("Checked out %d files into %s", written, work_dir)
    return written
