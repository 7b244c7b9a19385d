"""
ripgrep search orchestration for codenav.

This module builds ripgrep command lines from SearchOptions, runs one engine
process per call, and parses its line-oriented JSON output into typed records
that are reduced into the list of matches returned to the caller.
"""

import base64
import json
import os
import subprocess
from typing import Dict, Iterable, List, Optional, Any, Union
import logging

from ..errors import EngineError, EngineNotFoundError, ParseError
from ..models.search import (
    ContextRecord,
    EngineOutput,
    EngineRecord,
    MatchRecord,
    SearchMatch,
    SearchOptions,
    UnknownRecord,
)


logger = logging.getLogger(__name__)

# ripgrep exits 0 when something matched and 1 when nothing did
SUCCESS_EXIT_CODES = (0, 1)


def build_ripgrep_args(pattern: str, root: str, options: SearchOptions) -> List[str]:
    """
    Translate search options into ripgrep arguments.

    Args:
        pattern: The search pattern (regex or fixed string)
        root: The root directory the search directories are relative to
        options: Per-call search options

    Returns:
        Argument list, without the executable name
    """
    args = ["--json", "--line-number", "--column"]

    if options.context_before > 0:
        args.extend(["-B", str(options.context_before)])
    if options.context_after > 0:
        args.extend(["-A", str(options.context_after)])

    args.extend(["--max-count", str(options.max_results)])

    if options.ignore_case:
        args.append("--ignore-case")

    if options.fixed_strings:
        args.append("--fixed-strings")

    if options.file_type:
        args.extend(["--type", options.file_type])

    for exclude in options.exclude_patterns:
        args.extend(["--glob", f"!{exclude}/**"])

    # -e keeps patterns starting with '-' from being read as flags
    args.extend(["-e", pattern])

    for directory in options.directories:
        args.append(os.path.join(root, directory))

    return args


def _decode_data(value: Optional[Dict[str, Any]]) -> str:
    """Decode ripgrep's {'text': ...} / {'bytes': <base64>} data objects."""
    if not value:
        return ""
    if 'text' in value:
        return value['text']
    if 'bytes' in value:
        return base64.b64decode(value['bytes']).decode('utf-8', errors='replace')
    return ""


def parse_record(line: str, line_number: int = 1) -> EngineRecord:
    """
    Parse one line of ripgrep JSON output into a typed record.

    Args:
        line: A single output line
        line_number: Position of the line in the output, for error messages

    Returns:
        MatchRecord, ContextRecord, or UnknownRecord

    Raises:
        ParseError: If the line is not valid JSON or a record is malformed
    """
    try:
        parsed = json.loads(line)
    except json.JSONDecodeError as e:
        raise ParseError(line_number, str(e)) from e

    if not isinstance(parsed, dict):
        raise ParseError(line_number, f"expected a JSON object, got {type(parsed).__name__}")

    kind = parsed.get('type', '')
    data = parsed.get('data') or {}

    try:
        if kind == 'match':
            submatches = data.get('submatches') or []
            column = submatches[0].get('start', 0) if submatches else 0
            return MatchRecord(
                path=_decode_data(data.get('path')),
                line_number=data['line_number'],
                column=column,
                text=_decode_data(data.get('lines')),
            )

        if kind == 'context':
            return ContextRecord(
                path=_decode_data(data.get('path')),
                line_number=data['line_number'],
                text=_decode_data(data.get('lines')),
            )
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ParseError(line_number, f"malformed {kind} record: {e}") from e

    return UnknownRecord(kind=str(kind))


def parse_engine_output(
    lines: Iterable[str],
    root: str,
    max_results: Optional[int] = None,
) -> EngineOutput:
    """
    Parse and reduce a complete ripgrep JSON output stream.

    Every line is parsed even once max_results matches have been collected, so
    a malformed line anywhere fails the whole call.

    Args:
        lines: Output lines (blank lines are skipped)
        root: Root directory match paths are made relative to
        max_results: Optional cap on the number of matches kept

    Returns:
        EngineOutput with the matches and the separately aggregated context

    Raises:
        ParseError: If any line cannot be parsed
    """
    output = EngineOutput()

    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue

        record = parse_record(line, line_number)
        output.records_seen += 1

        if isinstance(record, MatchRecord):
            if max_results is not None and len(output.matches) >= max_results:
                continue
            output.matches.append(SearchMatch(
                file=os.path.relpath(record.path, root),
                line=record.line_number,
                column=record.column,
                matched_text=record.text.strip(),
            ))
        elif isinstance(record, ContextRecord):
            key = (record.path, record.line_number)
            output.context.setdefault(key, []).append(record.text)

    return output


def _run_engine(args: List[str], cwd: str, engine: str) -> subprocess.CompletedProcess:
    """Run the engine to completion, draining stdout and stderr together."""
    try:
        return subprocess.run(
            [engine, *args],
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding='utf-8',
            errors='replace',
        )
    except FileNotFoundError as e:
        # A missing working directory is reported with its own filename
        if e.filename is not None and os.path.abspath(str(e.filename)) == os.path.abspath(cwd):
            raise
        raise EngineNotFoundError(engine) from e


def ripgrep_search(
    pattern: str,
    root: str,
    options: Optional[Union[SearchOptions, Dict[str, Any]]] = None,
    engine: str = "rg",
) -> List[SearchMatch]:
    """
    Execute a ripgrep search and return the parsed matches.

    Args:
        pattern: The search pattern (regex or fixed string)
        root: The root directory to search in
        options: Search options (SearchOptions or a dict of its fields)
        engine: ripgrep executable name or path

    Returns:
        List of SearchMatch objects with root-relative paths

    Raises:
        EngineNotFoundError: If the engine binary is not installed
        EngineError: If the engine exits with a status other than 0 or 1
        ParseError: If the engine output cannot be parsed
    """
    if options is None:
        options = SearchOptions()
    elif isinstance(options, dict):
        options = SearchOptions.model_validate(options)

    root = os.path.abspath(str(root))
    args = build_ripgrep_args(pattern, root, options)
    logger.debug(f"Running ripgrep: {engine} {' '.join(args)} (cwd={root})")

    result = _run_engine(args, root, engine)

    if result.returncode not in SUCCESS_EXIT_CODES:
        logger.error(f"ripgrep exited with code {result.returncode}: {result.stderr.strip()}")
        raise EngineError(result.returncode, result.stderr)

    output = parse_engine_output(result.stdout.splitlines(), root, options.max_results)
    logger.info(f"ripgrep found {output.get_match_count()} matches for pattern '{pattern}'")

    return output.matches


def validate_ripgrep_installed(engine: str = "rg") -> str:
    """
    Validate that ripgrep is installed and accessible.

    Args:
        engine: ripgrep executable name or path

    Returns:
        The first line of 'rg --version'

    Raises:
        EngineNotFoundError: If the engine binary is not installed
        EngineError: If the version check fails
    """
    try:
        result = subprocess.run(
            [engine, "--version"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise EngineNotFoundError(engine) from e

    if result.returncode != 0:
        raise EngineError(result.returncode, result.stderr or "ripgrep check failed with non-zero exit code")

    version = result.stdout.splitlines()[0] if result.stdout else engine
    logger.info(f"Using {version}")
    return version
