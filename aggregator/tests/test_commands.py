"""Tests for the line protocol — both dialects, failure kinds, edge cases."""

import pytest

from aggregator.commands import (
    GROUP, HIT, MALFORMED_TIMESTAMP, MISSING_FIELD, TOTAL, UNKNOWN_COMMAND, USERS,
    Command, CommandError, ParseFailure, parse_command,
)


# ---------------------------------------------------------------------------
# Primary dialect
# ---------------------------------------------------------------------------

class TestPrimaryDialect:
    def test_hit_with_user(self):
        assert parse_command("hit 1 trip alice") == Command(HIT, 1, "trip", "alice")

    def test_hit_without_user(self):
        assert parse_command("hit 1 trip") == Command(HIT, 1, "trip", None)

    def test_total(self):
        assert parse_command("total 60") == Command(TOTAL, 60)

    def test_group(self):
        assert parse_command("group 60 trip") == Command(GROUP, 60, "trip")

    def test_users(self):
        assert parse_command("users 61 trip") == Command(USERS, 61, "trip")

    def test_command_word_is_case_insensitive(self):
        assert parse_command("HIT 1 trip alice") == Command(HIT, 1, "trip", "alice")
        assert parse_command("Total 5") == Command(TOTAL, 5)

    def test_group_and_user_keep_their_case(self):
        assert parse_command("hit 1 Trip Alice") == Command(HIT, 1, "Trip", "Alice")

    def test_extra_whitespace_and_tokens_ignored(self):
        assert parse_command("  hit\t1   trip  alice extra  \n") == Command(HIT, 1, "trip", "alice")
        assert parse_command("total 5 trailing") == Command(TOTAL, 5)

    def test_negative_timestamp_is_an_integer(self):
        assert parse_command("total -3") == Command(TOTAL, -3)


# ---------------------------------------------------------------------------
# COUNT dialect
# ---------------------------------------------------------------------------

class TestCountDialect:
    def test_count_alone_is_total(self):
        assert parse_command("COUNT 62") == Command(TOTAL, 62)

    def test_count_group(self):
        assert parse_command("COUNT 60 GROUP trip") == Command(GROUP, 60, "trip")

    def test_count_group_breakdown_user(self):
        assert parse_command("COUNT 61 GROUP trip BREAKDOWN user") == Command(USERS, 61, "trip")

    def test_count_clauses_case_insensitive(self):
        assert parse_command("count 61 group trip breakdown USER") == Command(USERS, 61, "trip")

    def test_count_unknown_clause(self):
        result = parse_command("COUNT 60 REGION eu")
        assert isinstance(result, ParseFailure)
        assert result.kind == UNKNOWN_COMMAND

    def test_count_group_missing_name(self):
        assert parse_command("COUNT 60 GROUP").kind == MISSING_FIELD

    def test_count_breakdown_missing_dimension(self):
        assert parse_command("COUNT 60 GROUP trip BREAKDOWN").kind == MISSING_FIELD

    def test_count_breakdown_unknown_dimension(self):
        assert parse_command("COUNT 60 GROUP trip BREAKDOWN device").kind == UNKNOWN_COMMAND

    def test_count_unknown_clause_after_group(self):
        assert parse_command("COUNT 60 GROUP trip SINCE 5").kind == UNKNOWN_COMMAND


# ---------------------------------------------------------------------------
# Failures are values, never exceptions
# ---------------------------------------------------------------------------

class TestFailures:
    @pytest.mark.parametrize("line", ["", "   ", "\n", "\t \t"])
    def test_blank_line_is_none(self, line):
        assert parse_command(line) is None

    @pytest.mark.parametrize("line", ["hit x trip", "total 1.5", "group 6e1 trip", "users ten trip"])
    def test_malformed_timestamp(self, line):
        result = parse_command(line)
        assert isinstance(result, ParseFailure)
        assert result.kind == MALFORMED_TIMESTAMP
        assert result.line == line

    @pytest.mark.parametrize("line", ["hit", "hit 1", "total", "group 1", "users 1", "count"])
    def test_missing_field(self, line):
        assert parse_command(line).kind == MISSING_FIELD

    @pytest.mark.parametrize("line", ["7", "delete 1 trip", "hits 1 trip"])
    def test_unknown_command(self, line):
        assert parse_command(line).kind == UNKNOWN_COMMAND

    def test_missing_field_checked_before_timestamp(self):
        """'hit' with no timestamp is a missing field, not a malformed one."""
        assert parse_command("hit").kind == MISSING_FIELD

    def test_failure_detail_is_descriptive(self):
        assert "1.5" in parse_command("total 1.5").detail


class TestCommandError:
    def test_is_a_value_error_carrying_the_failure(self):
        failure = parse_command("bogus 1")
        err = CommandError(failure)
        assert isinstance(err, ValueError)
        assert err.failure is failure
        assert UNKNOWN_COMMAND in str(err)
