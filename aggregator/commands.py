"""Line protocol for the hit aggregator.

One command per line, whitespace separated, command word matched
case-insensitively.  Two dialects map onto the same four commands:

    hit <ts> <group> [user]           count <ts>
    total <ts>                        count <ts> group <group>
    group <ts> <group>                count <ts> group <group> breakdown user
    users <ts> <group>

Parsing never raises.  A line either yields a Command, a ParseFailure
naming what was wrong with it, or None when it is blank.  What to do with
a failure (skip, warn, abort) is the caller's decision, see
engine.handle_line.
"""

from dataclasses import dataclass

HIT = "hit"
TOTAL = "total"
GROUP = "group"
USERS = "users"

MALFORMED_TIMESTAMP = "malformed_timestamp"
MISSING_FIELD = "missing_field"
UNKNOWN_COMMAND = "unknown_command"


@dataclass(frozen=True)
class Command:
    name: str  # hit | total | group | users
    ts: int
    group: str | None = None
    user: str | None = None


@dataclass(frozen=True)
class ParseFailure:
    kind: str  # malformed_timestamp | missing_field | unknown_command
    line: str
    detail: str


class CommandError(ValueError):
    """Raised by the abort error policy; carries the ParseFailure."""

    def __init__(self, failure: ParseFailure):
        super().__init__(f"{failure.kind}: {failure.detail} ({failure.line!r})")
        self.failure = failure


def parse_command(line: str) -> Command | ParseFailure | None:
    parts = line.split()
    if not parts:
        return None

    word = parts[0].lower()
    parser = _PARSERS.get(word)
    if parser is None:
        return ParseFailure(UNKNOWN_COMMAND, line, f"unknown command '{parts[0]}'")

    if len(parts) < 2:
        return ParseFailure(MISSING_FIELD, line, f"'{word}' needs a timestamp")
    try:
        ts = int(parts[1])
    except ValueError:
        return ParseFailure(MALFORMED_TIMESTAMP, line, f"timestamp '{parts[1]}' is not an integer")

    return parser(line, word, ts, parts[2:])


# ---------------------------------------------------------------------------
# Per-command parsers: (line, word, ts, remaining tokens) -> Command | ParseFailure
# ---------------------------------------------------------------------------

def _parse_hit(line, word, ts, args):
    if not args:
        return ParseFailure(MISSING_FIELD, line, "'hit' needs a group")
    user = args[1] if len(args) > 1 else None
    return Command(HIT, ts, args[0], user)


def _parse_total(line, word, ts, args):
    return Command(TOTAL, ts)


def _parse_group_query(line, word, ts, args):
    if not args:
        return ParseFailure(MISSING_FIELD, line, f"'{word}' needs a group")
    return Command(GROUP if word == GROUP else USERS, ts, args[0])


def _parse_count(line, word, ts, args):
    """count <ts> [group <group> [breakdown user]]"""
    if not args:
        return Command(TOTAL, ts)

    if args[0].lower() != "group":
        return ParseFailure(UNKNOWN_COMMAND, line, f"unknown count clause '{args[0]}'")
    if len(args) < 2:
        return ParseFailure(MISSING_FIELD, line, "'count ... group' needs a group")
    group = args[1]

    if len(args) == 2:
        return Command(GROUP, ts, group)

    if args[2].lower() != "breakdown":
        return ParseFailure(UNKNOWN_COMMAND, line, f"unknown count clause '{args[2]}'")
    if len(args) < 4:
        return ParseFailure(MISSING_FIELD, line, "'breakdown' needs a dimension")
    if args[3].lower() != "user":
        # Only the per-user breakdown is tracked.
        return ParseFailure(UNKNOWN_COMMAND, line, f"unknown breakdown dimension '{args[3]}'")
    return Command(USERS, ts, group)


_PARSERS = {
    HIT: _parse_hit,
    TOTAL: _parse_total,
    GROUP: _parse_group_query,
    USERS: _parse_group_query,
    "count": _parse_count,
}
