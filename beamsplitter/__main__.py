"""Command-line entry point: ``beamsplitter`` or ``python -m beamsplitter``."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from beamsplitter.emitters import get_emitter_info, list_emitters
from beamsplitter.emitters.java import DEFAULT_FILENAME as JAVA_FILENAME
from beamsplitter.emitters.javascript import DEFAULT_TYPESCRIPT_NAME
from beamsplitter.errors import BeamsplitterError, PatchError
from beamsplitter.pipeline import OutputConfig, run

LOG_LEVEL_ENV = "BEAMSPLITTER_LOG_LEVEL"

logger = logging.getLogger(__name__)


def _log_level(verbose: bool) -> int:
    """Level from ``-v``, else from the environment, else WARNING."""
    if verbose:
        return logging.DEBUG
    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        level = logging.getLevelName(env_level.strip().upper())
        if isinstance(level, int):
            return level
        logger.warning("%s=%r is not a valid log level, ignoring", LOG_LEVEL_ENV, env_level)
    return logging.WARNING


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="beamsplitter",
        description="Generate serializers and language bindings from an annotated C++ header.",
    )
    parser.add_argument("input", type=Path, nargs="?", help="Header to read")
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for generated files (default: current directory)",
    )
    parser.add_argument(
        "--typescript",
        type=Path,
        help=f"TypeScript declaration file to patch (default: OUTPUT_DIR/{DEFAULT_TYPESCRIPT_NAME})",
    )
    parser.add_argument(
        "--java",
        type=Path,
        help=f"Java class file to patch (default: OUTPUT_DIR/{JAVA_FILENAME})",
    )
    parser.add_argument(
        "--emitter",
        action="append",
        choices=list_emitters(),
        help="Run only this emitter; repeatable (default: all)",
    )
    parser.add_argument("--threaded", action="store_true", help="Scan on a separate thread")
    parser.add_argument("--list-emitters", action="store_true", help="List the available emitters and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    args = parser.parse_args(argv)

    if args.list_emitters:
        for info in get_emitter_info():
            print(f"{info['name']:<12} {info['description']}")
        return 0
    if args.input is None:
        parser.error("the following arguments are required: input")

    logging.basicConfig(level=_log_level(args.verbose), format="%(levelname)s %(name)s: %(message)s")

    targets: dict[str, Path] = {}
    if args.typescript is not None:
        targets[DEFAULT_TYPESCRIPT_NAME] = args.typescript
    if args.java is not None:
        targets[JAVA_FILENAME] = args.java
    config = OutputConfig(args.output_dir, targets)

    try:
        result = run(args.input, config, args.emitter, threaded=args.threaded)
    except PatchError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    except BeamsplitterError as exc:
        location = f"{args.input}:{exc.line}" if exc.line is not None else str(args.input)
        print(f"{location}: error: {exc.message}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    logger.info("%d files written, %d files patched", len(result.written), len(result.patched))
    return 0


if __name__ == "__main__":
    sys.exit(main())
