import sys

from gitclone.config import Settings
from gitclone.errors import GitCloneError
from gitclone.models import Git
from gitclone.utils import configure_logging, get_parser


def run_clone(url, work_dir, settings: Settings):
    try:
        report = Git(work_dir, settings=settings).clone(url)
    except GitCloneError as exc:
        print(f"Could not discover refs for {url}, {exc}")
        return
    for result in report.results:
        if result.ok:
            print(f"Processed ref {result.ref.id}")
        else:
            print(f"Could not process ref {result.ref.id}, {result.error}")
    if report.failures:
        print(f"{len(report.failures)} of {len(report.results)} refs failed")


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings, verbose=args.verbose)

    git = Git(settings=settings)
    match args.command:
        case "init":
            return git.init_repo()
        case "cat-file":
            return git.cat_file(args.hash, pretty_print=args.pretty_print)
        case "hash-object":
            return git.hash_object(args.path, write=args.write)
        case "ls-tree":
            return git.ls_tree(args.hash_value, name_only=args.name_only)
        case "write-tree":
            return git.create_tree()
        case "commit-tree":
            return git.commit_tree(args.tree_hash, args.message, parent=args.parent)
        case "clone":
            return run_clone(args.url, args.work_dir, settings)
        case None:
            parser.print_help(sys.stderr)
            raise SystemExit(2)
        case _:
            raise RuntimeError(f"Unknown command #{args.command}")


def cli():
    main()
    return 0


if __name__ == "__main__":
    main()
