"""Tests for the replay CLI — stdin/file input, formats, error policies."""

import io

import pytest

from aggregator.engine import CommandEngine
from aggregator.main import main, run

# The reference test input, including its leading command-count line.
_REFERENCE_INPUT = """7
HIT 1 trip alice
HIT 2 trip alice
HIT 60 trip bob
COUNT 60 GROUP trip
COUNT 61 GROUP trip
COUNT 61 GROUP trip BREAKDOWN user
COUNT 62
"""

_SCENARIO = """hit 1 trip alice
hit 2 trip alice
hit 60 trip bob
total 60
group 60 trip
total 61
users 61 trip

total 62
"""


def _stdin(monkeypatch, text):
    monkeypatch.setattr("sys.stdin", io.StringIO(text))


class TestTextOutput:
    def test_scenario_from_stdin(self, monkeypatch, capsys):
        _stdin(monkeypatch, _SCENARIO)
        assert main([]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "3", "3", "2", "alice 1", "bob 1", "1",
        ]

    def test_scenario_from_file(self, tmp_path, capsys):
        path = tmp_path / "commands.txt"
        path.write_text(_SCENARIO)
        assert main([str(path)]) == 0
        assert capsys.readouterr().out.splitlines()[-1] == "1"

    def test_empty_breakdown_prints_no_lines(self, monkeypatch, capsys):
        _stdin(monkeypatch, "hit 1 trip\nusers 1 trip\n")
        assert main([]) == 0
        assert capsys.readouterr().out == ""


class TestJsonOutput:
    def test_reference_input(self, monkeypatch, capsys):
        _stdin(monkeypatch, _REFERENCE_INPUT)
        assert main(["--format", "json"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            '{"group":"trip","total":3}',
            '{"group":"trip","total":2}',
            '{"group":"trip","window":"last_60_seconds","totals":{"alice":1,"bob":1}}',
            '{"total":1}',
        ]

    def test_config_file_sets_format(self, monkeypatch, capsys, tmp_path):
        config = tmp_path / "aggregator.yml"
        config.write_text("output: json\nwindow_seconds: 10\n")
        _stdin(monkeypatch, "hit 1 g u\nusers 1 g\ntotal 11\n")
        assert main(["--config", str(config)]) == 0
        assert capsys.readouterr().out.splitlines() == [
            '{"group":"g","window":"last_10_seconds","totals":{"u":1}}',
            '{"total":0}',
        ]


class TestErrorPolicies:
    def test_skip_by_default(self, monkeypatch, capsys):
        _stdin(monkeypatch, "hit x trip\ntotal 1\n")
        assert main([]) == 0
        captured = capsys.readouterr()
        assert captured.out == "0\n"
        assert captured.err == ""

    def test_warn(self, monkeypatch, capsys):
        _stdin(monkeypatch, "hit x trip\ntotal 1\n")
        assert main(["--on-error", "warn"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "0\n"
        assert "malformed_timestamp" in captured.err

    def test_abort_exits_2(self, monkeypatch, capsys):
        _stdin(monkeypatch, "total 1\nbogus\ntotal 2\n")
        assert main(["--on-error", "abort"]) == 2
        captured = capsys.readouterr()
        assert captured.out == "0\n"
        assert "Aborted" in captured.err

    def test_stats_summary(self, monkeypatch, capsys):
        _stdin(monkeypatch, "hit 1 g\nnope\n\ntotal 1\n")
        assert main(["--stats"]) == 0
        assert "Done. 2 commands, 1 results, 1 skipped." in capsys.readouterr().err

    def test_invalid_configuration_exits_2(self, capsys):
        assert main(["--window-seconds", "0"]) == 2
        assert "Invalid configuration" in capsys.readouterr().err

    def test_unknown_format_rejected_by_argparse(self):
        with pytest.raises(SystemExit):
            main(["--format", "xml"])


class TestRun:
    def test_counts_and_output_stream(self):
        out = io.StringIO()
        counts = run(["hit 1 g", "total 1", "bad", ""], CommandEngine(), "text", "skip", out=out)
        assert counts == (2, 1, 1)
        assert out.getvalue() == "1\n"
