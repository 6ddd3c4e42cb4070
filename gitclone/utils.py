import logging
import pathlib
from argparse import ArgumentParser

from gitclone.config import Settings


def get_parser():
    parser = ArgumentParser(prog="gitclone")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log debug output to stderr"
    )
    subparsers = parser.add_subparsers(dest="command")

    # init
    _init_parser = subparsers.add_parser("init")

    # cat-file
    cat_file_parser = subparsers.add_parser("cat-file")
    cat_file_parser.add_argument(
        "-p", "--pretty-print", action="store_true", help="pretty print"
    )
    cat_file_parser.add_argument(
        "hash",
    )

    # hash_object
    hash_object_parser = subparsers.add_parser("hash-object")
    hash_object_parser.add_argument("path", type=pathlib.Path)
    hash_object_parser.add_argument("-w", "--write", action="store_true")

    # ls-tree
    ls_tree_parser = subparsers.add_parser("ls-tree")
    ls_tree_parser.add_argument("--name-only", action="store_true")
    ls_tree_parser.add_argument("hash_value")

    # write-tree
    _write_tree_parser = subparsers.add_parser("write-tree")

    # commit-tree
    commit_tree_parser = subparsers.add_parser("commit-tree")
    commit_tree_parser.add_argument("tree_hash")
    commit_tree_parser.add_argument("-p", "--parent", default="")
    commit_tree_parser.add_argument("-m", "--message", default="Initial commit")

    # clone
    clone_parser = subparsers.add_parser("clone")
    clone_parser.add_argument("url")
    clone_parser.add_argument("work_dir", type=pathlib.Path)

    return parser


def configure_logging(settings: Settings, *, verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
