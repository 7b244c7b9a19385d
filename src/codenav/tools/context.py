"""
Source excerpt extraction for codenav.

Two ways of showing the code around a located line: a fixed window of lines
with the target line marked, and a heuristic excerpt that reaches back to the
symbol's PHPDoc block and forward to the end of its declaration. The heuristic
scans fixed-size windows of raw lines; it does not parse PHP.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

from ..errors import LineOutOfRangeError, SourceFileNotFoundError
from ..models.search import LineRange


logger = logging.getLogger(__name__)

DOC_LOOKBACK_LINES = 30
DECLARATION_LOOKAHEAD_LINES = 20
DEFAULT_MAX_READ_LINES = 500


def read_lines(file_path: Union[str, Path]) -> List[str]:
    """
    Read a whole file and split it into lines.

    Args:
        file_path: Absolute path to the file

    Returns:
        The file's lines, without line terminators. A final newline ends the
        last line rather than starting an empty one.

    Raises:
        SourceFileNotFoundError: If the file cannot be read
    """
    try:
        with open(file_path, 'r', encoding='utf-8', errors='replace', newline='') as f:
            content = f.read()
    except OSError as e:
        raise SourceFileNotFoundError(str(file_path), e) from e

    if content.endswith('\n'):
        content = content[:-1]
    return [line.rstrip('\r') for line in content.split('\n')]


def _check_line(line_number: int, lines: List[str]) -> None:
    if line_number < 1 or line_number > len(lines):
        raise LineOutOfRangeError(line_number, len(lines))


def read_file_with_context(
    file_path: Union[str, Path],
    line_number: int,
    lines_before: int,
    lines_after: int,
) -> str:
    """
    Read a file and extract lines around a target line.

    Args:
        file_path: Absolute path to the file
        line_number: The target line number (1-indexed)
        lines_before: Number of lines to include before
        lines_after: Number of lines to include after

    Returns:
        The extracted lines with line numbers, the target line marked with '>'

    Raises:
        SourceFileNotFoundError: If the file cannot be read
        LineOutOfRangeError: If the target line is not in the file
    """
    lines = read_lines(file_path)
    _check_line(line_number, lines)

    start = max(0, line_number - 1 - max(0, lines_before))
    end = min(len(lines), line_number + max(0, lines_after))

    rendered = []
    for index in range(start, end):
        actual_line = index + 1
        marker = ">" if actual_line == line_number else " "
        rendered.append(f"{marker}{actual_line:>5} | {lines[index]}")

    return "\n".join(rendered)


def find_doc_start(lines: List[str], line_number: int) -> int:
    """
    Find the 0-based index where a symbol's excerpt starts.

    Looks back at most DOC_LOOKBACK_LINES lines for a '/**' opener. Any line
    that is not blank, a '*' continuation, or a '//' comment ends the search
    and the excerpt starts right after it.
    """
    doc_start = line_number - 1
    max_look_back = max(0, line_number - DOC_LOOKBACK_LINES)

    for i in range(line_number - 2, max_look_back - 1, -1):
        trimmed = lines[i].strip()

        if trimmed.startswith('/**'):
            return i

        if trimmed and not trimmed.startswith('*') and not trimmed.startswith('//'):
            return i + 1

    return doc_start


def find_declaration_end(lines: List[str], line_number: int) -> int:
    """
    Find the 0-based index of the last line of a declaration.

    The first line within DECLARATION_LOOKAHEAD_LINES that opens a block or
    ends with ';' closes the declaration; otherwise it is the symbol line.
    """
    max_look_forward = min(len(lines), line_number + DECLARATION_LOOKAHEAD_LINES)

    for i in range(line_number - 1, max_look_forward):
        line = lines[i]
        if '{' in line or line.strip().endswith(';'):
            return i

    return line_number - 1


def extract_symbol_context(file_path: Union[str, Path], line_number: int) -> str:
    """
    Extract the PHPDoc block and declaration around a symbol.

    Args:
        file_path: Absolute path to the file
        line_number: The line number where the symbol was found (1-indexed)

    Returns:
        The doc block and signature with right-justified line numbers

    Raises:
        SourceFileNotFoundError: If the file cannot be read
        LineOutOfRangeError: If the symbol line is not in the file
    """
    lines = read_lines(file_path)
    _check_line(line_number, lines)

    doc_start = find_doc_start(lines, line_number)
    definition_end = find_declaration_end(lines, line_number)

    return "\n".join(
        f"{index + 1:>5} | {lines[index]}"
        for index in range(doc_start, definition_end + 1)
    )


def read_line_range(
    file_path: Union[str, Path],
    start_line: int = 1,
    end_line: Optional[int] = None,
    max_lines: int = DEFAULT_MAX_READ_LINES,
) -> LineRange:
    """
    Read a bounded range of lines from a file.

    Args:
        file_path: Absolute path to the file
        start_line: First line to read (1-indexed, clamped to 1)
        end_line: Last line to read (inclusive); defaults to the end of the file
        max_lines: Maximum number of lines returned

    Returns:
        LineRange describing the lines read

    Raises:
        SourceFileNotFoundError: If the file cannot be read
        LineOutOfRangeError: If start_line is past the end of the file
    """
    lines = read_lines(file_path)
    total = len(lines)

    actual_start = max(1, start_line)
    if actual_start > total:
        raise LineOutOfRangeError(start_line, total)

    last_allowed = actual_start + max_lines - 1
    if end_line:
        actual_end = min(end_line, total, last_allowed)
    else:
        actual_end = min(total, last_allowed)

    if actual_end < total:
        logger.debug(f"Read of {file_path} stopped at line {actual_end} of {total}")

    return LineRange(
        path=str(file_path),
        start_line=actual_start,
        end_line=actual_end,
        total_lines=total,
        lines=lines[actual_start - 1:actual_end],
    )
