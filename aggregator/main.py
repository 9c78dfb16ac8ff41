"""Command replay CLI — reads hit/query lines, prints query results.

Reads one command per line from a file or stdin, runs each against a
single in-memory aggregator, and writes results to stdout.  Diagnostics
(warnings, --stats, abort messages) go to stderr so stdout stays
machine-readable.

Usage:
    python -m aggregator.main commands.txt
    python producer.py --stdout --seconds 300 | python -m aggregator.main --format json
    python -m aggregator.main --config config/aggregator.yml --on-error warn -
"""

import argparse
import sys

from aggregator.commands import CommandError
from aggregator.config import apply_overrides, load_settings
from aggregator.engine import ERROR_POLICIES, CommandEngine, handle_line
from aggregator.formatting import OUTPUT_FORMATS, RENDERERS


def _build_parser():
    parser = argparse.ArgumentParser(description="Rolling hit counter (command replay)")
    parser.add_argument(
        "input", nargs="?", default="-",
        help="Command file to replay (default: stdin)",
    )
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument("--window-seconds", type=int, default=None)
    parser.add_argument("--format", choices=OUTPUT_FORMATS, default=None)
    parser.add_argument(
        "--on-error", choices=ERROR_POLICIES, default=None,
        help="What to do with malformed lines (default: skip)",
    )
    parser.add_argument(
        "--stats", action="store_true", default=False,
        help="Print a summary line to stderr when done",
    )
    return parser


def run(lines, engine, output_format, on_error, out=None):
    """Replay *lines* through *engine*.  Returns (commands, results, skipped)."""
    if out is None:
        out = sys.stdout
    render = RENDERERS[output_format]
    commands = results = skipped = 0

    for line in lines:
        result, failure = handle_line(engine, line, on_error)
        if failure is not None:
            skipped += 1
            continue
        if not line.strip():
            continue
        commands += 1
        if result is None:
            continue
        results += 1
        for text in render(result, engine.window_seconds):
            print(text, file=out)

    return commands, results, skipped


def main(argv=None):
    args = _build_parser().parse_args(argv)

    try:
        settings = apply_overrides(
            load_settings(args.config),
            window_seconds=args.window_seconds,
            output_format=args.format,
            on_error=args.on_error,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    engine = CommandEngine(settings.window_seconds)

    if args.input == "-":
        stream, close = sys.stdin, False
    else:
        stream, close = open(args.input), True

    try:
        commands, results, skipped = run(
            stream, engine, settings.output_format, settings.on_error,
        )
    except CommandError as e:
        print(f"Aborted: {e}", file=sys.stderr)
        return 2
    finally:
        if close:
            stream.close()

    if args.stats:
        print(f"Done. {commands} commands, {results} results, {skipped} skipped.",
              file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
