import logging
import pathlib
import sys
import time
from operator import attrgetter
from os import PathLike

from gitclone.config import Settings
from gitclone.errors import MissingObjectError
from gitclone.models.checkout import checkout, peel
from gitclone.models.clone import CloneReport, GitClone, RefResult
from gitclone.models.delta import resolve_deltas
from gitclone.models.objects import (
    GitObject,
    ObjectKind,
    Ref,
    TreeEntry,
    parse_tree_content,
)
from gitclone.models.pack import parse_pack
from gitclone.models.store import ObjectStore, init_repository

__all__ = ["Git"]

logger = logging.getLogger(__name__)


class Git:
    ignore_patterns = {".git", "__pycache__", ".pytest_cache", ".venv"}

    def __init__(self, working_directory: PathLike = ".", *, settings: Settings = None):
        self.working_directory = pathlib.Path(working_directory)
        self.settings = settings or Settings()
        self.git_folder = self.working_directory / ".git"
        self.store = ObjectStore(self.git_folder)

    def init_repo(self):
        init_repository(
            self.working_directory, default_branch=self.settings.default_branch
        )
        print("Initialized git directory")

    def _read(self, hash_value: str) -> GitObject:
        obj = self.store.read(hash_value)
        if obj is None:
            raise MissingObjectError(hash_value)
        return obj

    def cat_file(self, hash_value: str, *, pretty_print: bool = False) -> GitObject:
        obj = self._read(hash_value)
        if pretty_print:
            sys.stdout.buffer.write(obj.content)
            sys.stdout.flush()
        return obj

    def hash_object(
        self,
        path: pathlib.Path,
        *,
        write: bool = False,
        pretty_print: bool = True,
    ) -> str:
        obj = GitObject(kind=ObjectKind.BLOB, content=pathlib.Path(path).read_bytes())
        if write:
            self.store.write(obj)
        if pretty_print:
            sys.stdout.write(obj.id)
        return obj.id

    def create_tree(
        self,
        working_directory: PathLike = None,
        *,
        pretty_print: bool = True,
    ) -> str:
        dir_path = pathlib.Path(working_directory or self.working_directory)
        entries = []

        for entry in sorted(dir_path.iterdir()):
            if entry.name in self.ignore_patterns:
                continue

            if entry.is_file():
                kind = ObjectKind.BLOB
                hash_value = self.hash_object(entry, write=True, pretty_print=False)
            elif entry.is_dir():
                kind = ObjectKind.TREE
                hash_value = self.create_tree(entry, pretty_print=False)
            else:
                continue
            entries.append(
                f"{kind.mode} {entry.name}".encode() + b"\0" + bytes.fromhex(hash_value)
            )

        tree_hash = self.store.put(ObjectKind.TREE, b"".join(entries))
        if pretty_print:
            sys.stdout.write(tree_hash)
        return tree_hash

    def ls_tree(self, hash_value: str, *, name_only: bool = False) -> list[TreeEntry]:
        obj = self._read(hash_value)
        if obj.kind != ObjectKind.TREE:
            raise ValueError(f"Not a tree object: {hash_value}")

        entries = sorted(parse_tree_content(obj.content), key=attrgetter("file_name"))
        for entry in entries:
            name = entry.file_name.decode(errors="replace")
            if name_only:
                print(name)
            else:
                kind = ObjectKind.TREE if entry.is_tree else ObjectKind.BLOB
                print(f"{entry.mode.decode():0>6} {kind} {entry.hash}\t{name}")
        return entries

    def commit_tree(
        self,
        tree_hash: str,
        message: str,
        *,
        parent: str = "",
        author: str = "Author Name <author@email.com>",
        committer: str = "Committer Name <committer@email.com>",
        timestamp: int = None,
        timezone: str = "-0500",
        pretty_print: bool = True,
    ) -> str:
        if timestamp is None:
            timestamp = int(time.time())

        lines = [f"tree {tree_hash}"]
        if parent:
            lines.append(f"parent {parent}")
        lines.append(f"author {author} {timestamp} {timezone}")
        lines.append(f"committer {committer} {timestamp} {timezone}")
        lines.append("")
        lines.append(message)
        commit_content = "\n".join(lines).encode() + b"\n"

        hash_value = self.store.put(ObjectKind.COMMIT, commit_content)
        if pretty_print:
            sys.stdout.write(hash_value)
        return hash_value

    def clone(self, url: str, http_client=None) -> CloneReport:
        """Fetch every advertised ref of ``url`` into this working directory.

        A failing ref is recorded in the report and the next one is tried.
        """
        init_repository(
            self.working_directory, default_branch=self.settings.default_branch
        )
        report = CloneReport()
        with GitClone(url, http_client, settings=self.settings) as remote:
            for ref in remote.refs:
                report.results.append(self._clone_ref(remote, ref))
        return report

    def _clone_ref(self, remote: GitClone, ref: Ref) -> RefResult:
        result = RefResult(ref=ref)
        try:
            pack_data = remote.fetch_pack(ref.id)
            _version, records = parse_pack(pack_data)
            objects = resolve_deltas(records)
            result.objects_written = self.store.write_all(objects.values())

            target = objects.get(ref.id)
            if target is None:
                raise MissingObjectError(ref.id, f"tip of {ref.name}")
            commit = peel(target, objects)
            if commit.kind == ObjectKind.COMMIT:
                result.files_written = checkout(
                    commit, objects, self.working_directory
                )
            else:
                logger.info("%s points at a %s, nothing to check out", ref.name, commit.kind)
        except Exception as exc:
            logger.warning("Could not process ref %s (%s): %s", ref.id, ref.name, exc)
            result.error = exc
        return result
