import asyncio
import sys
from pathlib import Path

from stylens.stylens_datatypes import StylensError
from stylens.stylens_features import find_hover, find_completion_context
from stylens.stylens_printer import Printer
from stylens.stylens_serialize import load_tree_file
from stylens.stylens_settings import Settings, load_settings

USAGE = "usage: stylens_cli.py <tree.json|tree.yaml> <byte-offset> [--complete] [--debug] [--settings FILE]"


def parse_args(argv):
    """Returns (tree_path, offset, complete, settings_path, debug) or raises SystemExit."""
    args = list(argv)
    complete = debug = False
    settings_path = None
    if "--complete" in args:
        args.remove("--complete")
        complete = True
    if "--debug" in args:
        args.remove("--debug")
        debug = True
    if "--settings" in args:
        i = args.index("--settings")
        if i + 1 >= len(args):
            print(USAGE, file=sys.stderr)
            raise SystemExit(2)
        settings_path = args[i + 1]
        del args[i:i + 2]
    if len(args) != 2 or args[0].startswith("-"):
        print(USAGE, file=sys.stderr)
        raise SystemExit(2)
    try:
        offset = int(args[1])
    except ValueError:
        print(f"Error: byte offset must be an integer, got {args[1]!r}", file=sys.stderr)
        raise SystemExit(2)
    return args[0], offset, complete, settings_path, debug


async def run(tree_path: str, offset: int, complete: bool, settings_path=None, debug: bool = False):
    """Answer one hover or completion query and print it."""
    p = Path(tree_path)
    if not p.exists():
        print(f"Error: file not found: {tree_path}", file=sys.stderr)
        raise SystemExit(1)
    try:
        settings = load_settings(settings_path) if settings_path else Settings()
        tree = load_tree_file(str(p))
        if complete:
            context = await find_completion_context(tree, offset, settings)
            if context is not None:
                print(f"{context.property_name}: {context.value!r} at {context.span.start}-{context.span.end}")
            return
        hover = await find_hover(tree, offset, settings)
        if hover is not None:
            print(hover.contents)
            if debug:
                # The folded value behind the CSS, e.g. <static 'red'>
                print(Printer().pformat(hover.value), file=sys.stderr)
    except StylensError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


async def main():
    tree_path, offset, complete, settings_path, debug = parse_args(sys.argv[1:])
    await run(tree_path, offset, complete, settings_path, debug)


if __name__ == "__main__":
    asyncio.run(main())
