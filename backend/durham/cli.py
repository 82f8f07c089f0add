"""Command line runner: `durham <input.dur>`.

Runs a Durham source file and prints its output. Exit status is 0 when the
program ran to completion, 2 on usage errors and 1 on unreadable files or a
failed run (the error message goes to stderr).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .interpreter import Interpreter


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="durham", description="Run a Durham program")
    p.add_argument("source", help="Path to a .dur source file")
    p.add_argument("--max-loop", type=int, default=None, help="Lower the for-loop iteration ceiling")
    p.add_argument("--subprocess", action="store_true", help="Run inside a resource-limited worker process")
    p.add_argument("--verbose", "-v", action="store_true", help="Trace statement execution to stderr")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    path = Path(args.source)
    try:
        code = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: Could not open file {path}: {e.strerror}", file=sys.stderr)
        return 1

    it = Interpreter()
    settings = {}
    if args.max_loop is not None:
        it.max_loop = min(args.max_loop, it.max_loop)
    if args.subprocess:
        settings["use_subprocess"] = True
    result = it.run(code, settings=settings)
    if not result["success"]:
        print(result["output"], file=sys.stderr)
        return 1
    if result["output"]:
        print(result["output"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
