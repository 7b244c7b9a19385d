"""
Unit tests for the ripgrep search module.

Tests argument construction, JSON record parsing, exit code handling, and
error mapping with a mocked engine, plus a few end-to-end searches that run
only when ripgrep is installed.
"""

import json
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from unittest.mock import patch
import pytest

from codenav.errors import EngineError, EngineNotFoundError, ParseError
from codenav.models.search import ContextRecord, MatchRecord, SearchOptions, UnknownRecord
from codenav.tools.ripgrep import (
    build_ripgrep_args,
    parse_engine_output,
    parse_record,
    ripgrep_search,
    validate_ripgrep_installed,
)


ROOT = "/srv/moodle"


def _match(path, line_number, text, start=0):
    return json.dumps({
        "type": "match",
        "data": {
            "path": {"text": path},
            "lines": {"text": text},
            "line_number": line_number,
            "absolute_offset": 0,
            "submatches": [{"match": {"text": text.strip()}, "start": start, "end": start + 3}],
        },
    })


def _context(path, line_number, text):
    return json.dumps({
        "type": "context",
        "data": {
            "path": {"text": path},
            "lines": {"text": text},
            "line_number": line_number,
            "absolute_offset": 0,
            "submatches": [],
        },
    })


def _begin(path):
    return json.dumps({"type": "begin", "data": {"path": {"text": path}}})


def _summary():
    return json.dumps({"type": "summary", "data": {"stats": {"matches": 0}}})


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=["rg"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestBuildRipgrepArgs:
    """Test cases for build_ripgrep_args."""

    def test_default_arguments(self):
        """Test the argument list for default options."""
        args = build_ripgrep_args("foo", ROOT, SearchOptions())

        assert args[:3] == ["--json", "--line-number", "--column"]
        assert args[args.index("--max-count") + 1] == "100"
        assert "-B" not in args and "-A" not in args
        assert "--ignore-case" not in args
        assert "--fixed-strings" not in args
        assert "--type" not in args
        assert args[-1] == os.path.join(ROOT, ".")
        assert args[-2] == "foo"

    def test_exclude_globs(self):
        """Test one negated glob per exclude pattern."""
        args = build_ripgrep_args("foo", ROOT, SearchOptions())
        globs = [args[i + 1] for i, a in enumerate(args) if a == "--glob"]
        assert globs == ["!vendor/**", "!node_modules/**", "!.git/**"]

    def test_all_options(self):
        """Test that every option is translated."""
        options = SearchOptions(
            directories=["lib", "mod/forum"],
            exclude_patterns=["tests/"],
            max_results=7,
            context_before=3,
            context_after=5,
            ignore_case=True,
            file_type="php",
            fixed_strings=True,
        )
        args = build_ripgrep_args("get_string(", ROOT, options)

        assert args[args.index("-B") + 1] == "3"
        assert args[args.index("-A") + 1] == "5"
        assert args[args.index("--max-count") + 1] == "7"
        assert "--ignore-case" in args
        assert "--fixed-strings" in args
        assert args[args.index("--type") + 1] == "php"
        assert args[args.index("--glob") + 1] == "!tests/**"
        assert args[-3:] == ["get_string(", os.path.join(ROOT, "lib"), os.path.join(ROOT, "mod/forum")]

    def test_pattern_precedes_paths(self):
        """Test that the pattern comes after every option and before the paths."""
        args = build_ripgrep_args("-foo", ROOT, SearchOptions(directories=["lib"]))
        pattern_index = args.index("-foo")
        assert args[pattern_index - 1] == "-e"
        assert args[pattern_index + 1:] == [os.path.join(ROOT, "lib")]


class TestParseRecord:
    """Test cases for parse_record."""

    def test_match_record(self):
        """Test parsing a match record."""
        record = parse_record(_match("/srv/moodle/lib/a.php", 12, "  function foo() {\n", start=2))
        assert isinstance(record, MatchRecord)
        assert record.path == "/srv/moodle/lib/a.php"
        assert record.line_number == 12
        assert record.column == 2

    def test_match_without_submatches(self):
        """Test that a match without submatches reports column 0."""
        line = json.dumps({
            "type": "match",
            "data": {"path": {"text": "/a.php"}, "lines": {"text": "x"}, "line_number": 1, "submatches": []},
        })
        assert parse_record(line).column == 0

    def test_context_record(self):
        """Test parsing a context record."""
        record = parse_record(_context("/srv/moodle/lib/a.php", 11, "/**\n"))
        assert isinstance(record, ContextRecord)
        assert record.line_number == 11

    def test_other_records_are_unknown(self):
        """Test that begin/end/summary records are classified as unknown."""
        assert isinstance(parse_record(_begin("/a.php")), UnknownRecord)
        assert parse_record(_summary()).kind == "summary"

    def test_bytes_path(self):
        """Test decoding of base64 'bytes' data objects."""
        line = json.dumps({
            "type": "match",
            "data": {
                "path": {"bytes": "L3Nydi9tb29kbGUvbGliL2EucGhw"},
                "lines": {"bytes": "Zm9vCg=="},
                "line_number": 1,
                "submatches": [],
            },
        })
        record = parse_record(line)
        assert record.path == "/srv/moodle/lib/a.php"
        assert record.text == "foo\n"

    def test_invalid_json(self):
        """Test that malformed JSON raises ParseError."""
        with pytest.raises(ParseError) as exc_info:
            parse_record("{not json", 4)
        assert exc_info.value.line_number == 4

    def test_match_missing_line_number(self):
        """Test that a match record without a line number raises ParseError."""
        with pytest.raises(ParseError):
            parse_record(json.dumps({"type": "match", "data": {"path": {"text": "/a"}}}))


class TestParseEngineOutput:
    """Test cases for parse_engine_output."""

    def test_matches_are_root_relative_and_trimmed(self):
        """Test that match paths are rewritten relative to the root."""
        lines = [
            _begin("/srv/moodle/./lib/a.php"),
            _match("/srv/moodle/./lib/a.php", 3, "\tfunction foo() {\n", start=1),
            _summary(),
        ]
        output = parse_engine_output(lines, ROOT)

        assert output.get_match_count() == 1
        match = output.matches[0]
        assert match.file == os.path.join("lib", "a.php")
        assert match.line == 3
        assert match.column == 1
        assert match.matched_text == "function foo() {"

    def test_context_is_kept_separate(self):
        """Test that context records are aggregated but not returned as matches."""
        lines = [
            _context("/srv/moodle/lib/a.php", 2, "/**\n"),
            _match("/srv/moodle/lib/a.php", 3, "function foo() {\n"),
            _context("/srv/moodle/lib/a.php", 4, "}\n"),
        ]
        output = parse_engine_output(lines, ROOT)

        assert [m.line for m in output.matches] == [3]
        assert output.get_context_lines("/srv/moodle/lib/a.php", 2) == ["/**\n"]
        assert output.get_context_lines("/srv/moodle/lib/a.php", 4) == ["}\n"]
        assert output.to_dict()["context_lines"] == 2

    def test_max_results_caps_matches(self):
        """Test that no more than max_results matches are kept."""
        lines = [_match(f"/srv/moodle/f{i}.php", 1, "x\n") for i in range(5)]
        output = parse_engine_output(lines, ROOT, max_results=2)
        assert [m.file for m in output.matches] == ["f0.php", "f1.php"]
        assert output.records_seen == 5

    def test_malformed_line_after_cap_still_fails(self):
        """Test that a bad line anywhere fails the whole parse."""
        lines = [_match("/srv/moodle/a.php", 1, "x\n"), "garbage"]
        with pytest.raises(ParseError):
            parse_engine_output(lines, ROOT, max_results=1)

    def test_blank_lines_ignored(self):
        """Test that blank lines are skipped."""
        output = parse_engine_output(["", _match("/srv/moodle/a.php", 1, "x\n"), "  "], ROOT)
        assert output.get_match_count() == 1


class TestRipgrepSearchMocked:
    """Test cases for ripgrep_search with a mocked subprocess."""

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_spawn_parameters(self, mock_run):
        """Test that the engine runs in the root with stdin closed and output captured."""
        mock_run.return_value = _completed(returncode=1)

        ripgrep_search("foo", ROOT)

        call = mock_run.call_args
        assert call.args[0][0] == "rg"
        assert call.kwargs["cwd"] == ROOT
        assert call.kwargs["stdin"] == subprocess.DEVNULL
        assert call.kwargs["capture_output"] is True

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_relative_root_searched_once(self, mock_run, tmp_path, monkeypatch):
        """Test that a relative root is not applied again on top of the working directory."""
        (tmp_path / "proj" / "lib").mkdir(parents=True)
        monkeypatch.chdir(tmp_path)
        mock_run.return_value = _completed(returncode=1)

        ripgrep_search("x", "proj", SearchOptions(directories=["lib"]))

        call = mock_run.call_args
        cwd = call.kwargs["cwd"]
        searched = call.args[0][-1]
        assert os.path.isabs(cwd)
        assert os.path.samefile(cwd, tmp_path / "proj")
        assert os.path.isdir(os.path.join(cwd, searched))
        assert os.path.samefile(os.path.join(cwd, searched), tmp_path / "proj" / "lib")

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_no_matches_exit_one(self, mock_run):
        """Test that exit code 1 yields an empty list."""
        mock_run.return_value = _completed(stdout=_summary() + "\n", returncode=1)
        assert ripgrep_search("nothing_matches_this", ROOT) == []

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_matches_returned(self, mock_run):
        """Test that matches are parsed from stdout."""
        stdout = "\n".join([
            _begin("/srv/moodle/./lib/a.php"),
            _match("/srv/moodle/./lib/a.php", 10, "class foo {\n"),
            _summary(),
        ]) + "\n"
        mock_run.return_value = _completed(stdout=stdout)

        matches = ripgrep_search("class foo", ROOT, {"file_type": "php"})

        assert len(matches) == 1
        assert matches[0].file == os.path.join("lib", "a.php")
        assert "--type" in mock_run.call_args.args[0]

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_result_count_never_exceeds_cap(self, mock_run):
        """Test that the cap is passed to the engine and applied to the result."""
        stdout = "\n".join(_match(f"/srv/moodle/f{i}.php", 1, "x\n") for i in range(6))
        mock_run.return_value = _completed(stdout=stdout)

        matches = ripgrep_search("x", ROOT, SearchOptions(max_results=3))

        cmd = mock_run.call_args.args[0]
        assert cmd[cmd.index("--max-count") + 1] == "3"
        assert len(matches) == 3

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_engine_error(self, mock_run):
        """Test that exit codes other than 0 and 1 raise EngineError with stderr."""
        mock_run.return_value = _completed(stdout=_match("/srv/moodle/a.php", 1, "x\n"),
                                           stderr="regex parse error", returncode=2)

        with pytest.raises(EngineError) as exc_info:
            ripgrep_search("(", ROOT)

        assert exc_info.value.exit_code == 2
        assert "regex parse error" in exc_info.value.stderr

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_parse_error_returns_nothing(self, mock_run):
        """Test that malformed output fails the whole call."""
        stdout = _match("/srv/moodle/a.php", 1, "x\n") + "\n{broken\n"
        mock_run.return_value = _completed(stdout=stdout)

        with pytest.raises(ParseError):
            ripgrep_search("x", ROOT)

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_engine_not_found(self, mock_run):
        """Test that a missing binary raises EngineNotFoundError."""
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "rg")

        with pytest.raises(EngineNotFoundError) as exc_info:
            ripgrep_search("x", ROOT)
        assert "not installed" in str(exc_info.value)

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_other_spawn_errors_propagate(self, mock_run):
        """Test that other spawn failures are not rewritten."""
        mock_run.side_effect = PermissionError(13, "Permission denied", "rg")

        with pytest.raises(PermissionError):
            ripgrep_search("x", ROOT)

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_missing_working_directory_propagates(self, mock_run):
        """Test that a missing root is not reported as a missing engine."""
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", ROOT)

        with pytest.raises(FileNotFoundError):
            ripgrep_search("x", ROOT)


class TestValidateRipgrepInstalled:
    """Test cases for validate_ripgrep_installed."""

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_version_returned(self, mock_run):
        mock_run.return_value = _completed(stdout="ripgrep 14.1.0\n-SIMD -AVX\n")
        assert validate_ripgrep_installed() == "ripgrep 14.1.0"

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "rg")
        with pytest.raises(EngineNotFoundError):
            validate_ripgrep_installed()

    @patch("codenav.tools.ripgrep.subprocess.run")
    def test_non_zero_exit(self, mock_run):
        mock_run.return_value = _completed(returncode=2)
        with pytest.raises(EngineError):
            validate_ripgrep_installed()


@pytest.mark.skipif(shutil.which("rg") is None, reason="ripgrep not installed")
class TestRipgrepSearchIntegration:
    """End-to-end searches against a real ripgrep binary."""

    def setup_method(self):
        """Create a small PHP tree."""
        self.temp_dir = tempfile.mkdtemp()
        self.root = str(Path(self.temp_dir).resolve())
        files = {
            "lib/moodlelib.php": "<?php\nfunction get_string($id) {\n    return $id;\n}\n",
            "lib/weblib.php": "<?php\n$a = get_string('a');\n$b = get_string('b');\n$c = get_string('c');\n",
            "course/lib.php": "<?php\n$x = get_string('x');\n$y = GET_STRING('y');\n",
            "vendor/dep.php": "<?php\n$z = get_string('z');\n",
            "notes.txt": "get_string\n",
        }
        for rel, content in files.items():
            path = Path(self.root) / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    def teardown_method(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_zero_matches(self):
        """Test that a pattern with no matches returns an empty list."""
        assert ripgrep_search("zz_no_such_symbol_zz", self.root) == []

    def test_results_stay_under_root(self):
        """Test that every returned file rejoins to an existing file under the root."""
        matches = ripgrep_search("get_string", self.root, SearchOptions(file_type="php"))

        assert matches
        for match in matches:
            full = Path(self.root) / match.file
            assert full.is_file()
            full.resolve().relative_to(Path(self.root))
            assert match.file.endswith(".php")

    def test_cap(self):
        """Test that the result list respects max_results."""
        matches = ripgrep_search("get_string", self.root, SearchOptions(max_results=2))
        assert len(matches) <= 2

    def test_ignore_case_and_directories(self):
        """Test case-insensitive search limited to one directory."""
        matches = ripgrep_search(
            "get_string", self.root,
            SearchOptions(directories=["course"], ignore_case=True, fixed_strings=True),
        )
        assert sorted(m.line for m in matches) == [2, 3]
        assert all(m.file == os.path.join("course", "lib.php") for m in matches)

    def test_columns_are_offsets(self):
        """Test that the column is the 0-based start of the first submatch."""
        matches = ripgrep_search("get_string", self.root, SearchOptions(directories=["course"]))
        first = [m for m in matches if m.line == 2][0]
        assert first.column == 5

    def test_invalid_regex_is_engine_error(self):
        """Test that an invalid regex surfaces as EngineError."""
        with pytest.raises(EngineError):
            ripgrep_search("(unclosed", self.root)
