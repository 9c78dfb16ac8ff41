"""Command engine — applies parsed commands to a single WindowedAggregator.

Pure business logic, no I/O.  The CLI and the Kafka stream service each
build one engine, feed it lines, and render whatever results come back.

State: one WindowedAggregator, owned by the engine.
"""

import sys
from dataclasses import dataclass, field

from aggregator.commands import (
    GROUP, HIT, TOTAL, USERS, Command, CommandError, ParseFailure, parse_command,
)
from aggregator.window import DEFAULT_WINDOW_SECONDS, WindowedAggregator

SKIP = "skip"
WARN = "warn"
ABORT = "abort"
ERROR_POLICIES = (SKIP, WARN, ABORT)


@dataclass(frozen=True)
class TotalCount:
    ts: int
    total: int


@dataclass(frozen=True)
class GroupCount:
    ts: int
    group: str
    total: int


@dataclass(frozen=True)
class UserBreakdown:
    ts: int
    group: str
    totals: dict[str, int] = field(default_factory=dict)


class CommandEngine:

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS):
        self.aggregator = WindowedAggregator(window_seconds)
        self.window_seconds = window_seconds

    def execute(self, command: Command) -> TotalCount | GroupCount | UserBreakdown | None:
        """Run one command.  Records return None; queries return a result."""
        agg = self.aggregator
        if command.name == HIT:
            agg.record(command.ts, command.group, command.user)
            return None
        if command.name == TOTAL:
            return TotalCount(command.ts, agg.query_total(command.ts))
        if command.name == GROUP:
            return GroupCount(command.ts, command.group, agg.query_group(command.ts, command.group))
        if command.name == USERS:
            return UserBreakdown(command.ts, command.group, agg.query_users(command.ts, command.group))
        raise ValueError(f"Unknown command: {command.name}")


def handle_line(engine: CommandEngine, line: str, on_error: str = SKIP):
    """Parse and execute one line, applying *on_error* to parse failures.

    Returns (result, failure).  At most one of the two is set; both are
    None for blank lines and records.  With the abort policy a failure
    raises CommandError instead of being returned.
    """
    parsed = parse_command(line)
    if parsed is None:
        return None, None
    if isinstance(parsed, ParseFailure):
        if on_error == ABORT:
            raise CommandError(parsed)
        if on_error == WARN:
            print(f"skipped {parsed.kind}: {parsed.detail} ({line.strip()})", file=sys.stderr)
        return None, parsed
    return engine.execute(parsed), None
