"""
Search data models for codenav.

This module defines the structures exchanged with the search engine: the
per-call search options, the normalized matches returned to callers, and the
typed records parsed from each line of the engine's JSON output.
"""

from typing import Dict, List, Optional, Any, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_EXCLUDE_PATTERNS = ["vendor", "node_modules", ".git"]


class SearchMatch(BaseModel):
    """
    A single located pattern occurrence.

    Attributes:
        file: Path of the matching file, relative to the search root
        line: 1-based line number of the match
        column: 0-based byte offset of the first submatch within the line
        matched_text: The matching line with surrounding whitespace removed
    """

    model_config = ConfigDict(frozen=True)

    file: str = Field(..., min_length=1, description="Root-relative path of the matching file")
    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(0, ge=0, description="0-based offset of the first submatch")
    matched_text: str = Field("", description="Trimmed text of the matching line")

    def location(self) -> str:
        """Get the match location as 'file:line'."""
        return f"{self.file}:{self.line}"

    def __str__(self) -> str:
        return f"{self.location()}: {self.matched_text}"


class SearchOptions(BaseModel):
    """
    Per-call options for a ripgrep search.

    Attributes:
        directories: Directories to search, relative to the root
        exclude_patterns: Directory globs to exclude (negated as '!<pattern>/**')
        max_results: Cap passed to the engine and applied to the returned list
        context_before: Lines of engine context requested before each match
        context_after: Lines of engine context requested after each match
        ignore_case: Case-insensitive matching
        file_type: Optional ripgrep file type filter (e.g. 'php')
        fixed_strings: Treat the pattern as a literal instead of a regex
    """

    directories: List[str] = Field(default_factory=lambda: ["."], description="Directories to search")
    exclude_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Directory globs to exclude"
    )
    max_results: int = Field(100, gt=0, description="Maximum number of matches")
    context_before: int = Field(0, ge=0, description="Context lines before each match")
    context_after: int = Field(0, ge=0, description="Context lines after each match")
    ignore_case: bool = Field(False, description="Case-insensitive search")
    file_type: Optional[str] = Field(None, description="ripgrep file type filter")
    fixed_strings: bool = Field(False, description="Literal instead of regex matching")

    @field_validator('directories')
    @classmethod
    def validate_directories(cls, v: List[str]) -> List[str]:
        """Default to the root when no directory is given."""
        normalized = [d.strip() for d in v if d and d.strip()]
        return normalized or ["."]

    @field_validator('exclude_patterns')
    @classmethod
    def validate_exclude_patterns(cls, v: List[str]) -> List[str]:
        """Drop empty patterns and trailing slashes."""
        return [p.strip().rstrip('/') for p in v if p and p.strip().rstrip('/')]

    @field_validator('file_type')
    @classmethod
    def validate_file_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class MatchRecord(BaseModel):
    """A 'match' record from the engine's JSON output."""

    path: str
    line_number: int = Field(..., ge=1)
    column: int = Field(0, ge=0)
    text: str = ""


class ContextRecord(BaseModel):
    """A 'context' record, emitted only when before/after context is requested."""

    path: str
    line_number: int = Field(..., ge=1)
    text: str = ""


class UnknownRecord(BaseModel):
    """Any other record kind ('begin', 'end', 'summary', ...)."""

    kind: str = ""


EngineRecord = Union[MatchRecord, ContextRecord, UnknownRecord]


class EngineOutput(BaseModel):
    """
    Reduction of a complete engine record stream.

    Context lines are aggregated separately from the matches and keyed by
    (absolute path, line number); they are never merged into the match list.
    """

    matches: List[SearchMatch] = Field(default_factory=list)
    context: Dict[Tuple[str, int], List[str]] = Field(default_factory=dict)
    records_seen: int = Field(0, ge=0)

    def get_match_count(self) -> int:
        return len(self.matches)

    def get_context_lines(self, path: str, line_number: int) -> List[str]:
        """Get the context lines aggregated for a given file and line."""
        return self.context.get((path, line_number), [])

    def to_dict(self) -> Dict[str, Any]:
        """Convert the output to a dictionary representation."""
        return {
            'matches': [match.model_dump() for match in self.matches],
            'match_count': self.get_match_count(),
            'context_lines': sum(len(lines) for lines in self.context.values()),
            'records_seen': self.records_seen,
        }


class LineRange(BaseModel):
    """
    A bounded, 1-indexed range of lines read from one file.

    Attributes:
        path: The file the lines were read from
        start_line: First line included (1-based)
        end_line: Last line included (1-based, inclusive)
        total_lines: Number of lines in the whole file
        lines: The text of lines start_line..end_line
    """

    path: str
    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=0)
    total_lines: int = Field(..., ge=0)
    lines: List[str] = Field(default_factory=list)

    def is_truncated(self) -> bool:
        """Check whether lines remain after end_line."""
        return self.end_line < self.total_lines

    def remaining_lines(self) -> int:
        return max(0, self.total_lines - self.end_line)

    def render(self) -> str:
        """Render the lines with right-justified line numbers."""
        return "\n".join(
            f"{self.start_line + offset:>5} | {text}"
            for offset, text in enumerate(self.lines)
        )
