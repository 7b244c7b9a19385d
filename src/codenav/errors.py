"""
Error types for codenav.

Every failure raised by the navigation primitives derives from NavigatorError
so callers can translate them into their own response envelope in one place.
"""

from typing import Optional


class NavigatorError(Exception):
    """Base class for all codenav failures."""
    pass


class InvalidPathError(NavigatorError):
    """Raised when a caller-supplied path is absolute or escapes the root."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path '{path}': {reason}")


class EngineNotFoundError(NavigatorError):
    """Raised when the search engine binary cannot be found."""

    def __init__(self, engine: str = "rg"):
        self.engine = engine
        super().__init__(
            f"ripgrep ({engine}) is not installed or not in PATH. "
            f"Please install ripgrep: https://github.com/BurntSushi/ripgrep#installation"
        )


class EngineError(NavigatorError):
    """Raised when the search engine exits with an error status."""

    def __init__(self, exit_code: Optional[int], stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"ripgrep error (exit code {exit_code}): {stderr.strip()}")


class ParseError(NavigatorError):
    """Raised when a line of engine output is not valid JSON."""

    def __init__(self, line_number: int, detail: str):
        self.line_number = line_number
        self.detail = detail
        super().__init__(f"Failed to parse ripgrep output (line {line_number}): {detail}")


class SourceFileNotFoundError(NavigatorError):
    """Raised when a source file cannot be read."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"File not found: {path}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class DirectoryReadError(NavigatorError):
    """Raised when a directory in a tree listing cannot be read."""

    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to list directory {path}: {cause}")


class LineOutOfRangeError(NavigatorError):
    """Raised when a requested line lies outside the file."""

    def __init__(self, line: int, line_count: int):
        self.line = line
        self.line_count = line_count
        super().__init__(f"Line {line} is outside the file's {line_count} lines")


class ConfigurationError(NavigatorError):
    """Raised when configuration parsing or validation fails."""
    pass
