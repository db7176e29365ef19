"""Run an MBasic file, or start the interactive prompt."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Final, TextIO

from .errors import MBasicCompileError, MBasicRuntimeError, format_runtime_error
from .evaluator import Session

EXIT_COMPILE_ERROR: Final[int] = 65
EXIT_RUNTIME_ERROR: Final[int] = 70
_PROMPT: Final[str] = os.environ.get("MBASIC_PROMPT", "MBasic>> ")


def run_source(session: Session, source: str, *, stderr: TextIO) -> int:
    try:
        session.run(source)
    except MBasicCompileError as err:
        print(err, file=stderr)
        return EXIT_COMPILE_ERROR
    except MBasicRuntimeError as err:
        print(format_runtime_error(err), file=stderr)
        return EXIT_RUNTIME_ERROR
    return 0


def run_file(path: str, *, stdout: TextIO | None = None, stderr: TextIO | None = None) -> int:
    stderr = stderr if stderr is not None else sys.stderr
    try:
        source = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {path}", file=stderr)
        return 66
    return run_source(Session(stdout=stdout), source, stderr=stderr)


def run_prompt(*, stdin: TextIO | None = None, stdout: TextIO | None = None, stderr: TextIO | None = None) -> int:
    """Collect lines until one ends with ``$``, then run the buffer; ``exit`` quits.

    Errors are reported and the prompt keeps going; definitions persist.
    """
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    stderr = stderr if stderr is not None else sys.stderr
    session = Session(stdout=stdout, stdin=stdin)
    buffer: list[str] = []
    while True:
        stdout.write(_PROMPT)
        stdout.flush()
        raw = stdin.readline()
        if raw == "":
            return 0
        line = raw.rstrip("\r\n")
        if line.strip() == "exit":
            print("Now exiting MBasic. Have a great day :)", file=stdout)
            return 0
        if line.endswith("$"):
            buffer.append(line[:-1])
            run_source(session, "\n".join(buffer), stderr=stderr)
            buffer = []
        else:
            buffer.append(line)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", nargs="?", help="script to run; omit for the interactive prompt")
    parser.add_argument("--verbose", action="store_true", help="emit debug logging to stderr")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.path is not None:
        return run_file(args.path)
    return run_prompt()


if __name__ == "__main__":
    raise SystemExit(main())
