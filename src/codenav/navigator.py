"""
Navigator service for codenav.

CodeNavigator composes the navigation primitives into the four text-producing
operations offered to callers: symbol lookup, usage examples, file reading,
and directory structure. Every directory or file argument is checked by the
path guard before it reaches the filesystem or the search engine.
"""

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging

from .errors import EngineError, InvalidPathError, NavigatorError, ParseError
from .models.config import NavigatorConfig
from .models.search import SearchMatch, SearchOptions
from .tools.context import extract_symbol_context, read_file_with_context, read_line_range
from .tools.path_guard import is_within_root, normalize_relative, resolve_safe
from .tools.ripgrep import ripgrep_search
from .tools.tree import list_directory_structure


logger = logging.getLogger(__name__)

SYMBOL_PATTERNS: Dict[str, List[str]] = {
    'class': [r"class\s+{name}\b"],
    'function': [r"function\s+{name}\s*\("],
    'constant': [
        r"define\s*\(\s*['\"]{name}['\"]",
        r"const\s+{name}\s*=",
    ],
}
SYMBOL_PATTERNS['any'] = SYMBOL_PATTERNS['class'] + SYMBOL_PATTERNS['function'] + SYMBOL_PATTERNS['constant']

SYMBOL_TYPES = tuple(SYMBOL_PATTERNS)


def build_symbol_patterns(symbol_name: str, symbol_type: str = "any") -> List[str]:
    """
    Build the ripgrep patterns that locate a PHP symbol definition.

    Args:
        symbol_name: Class, function, or constant name
        symbol_type: One of 'class', 'function', 'constant', 'any'

    Returns:
        List of regex patterns

    Raises:
        ValueError: If the symbol type is unknown
    """
    if symbol_type not in SYMBOL_PATTERNS:
        raise ValueError(f"Invalid symbol type: {symbol_type}. Expected one of {', '.join(SYMBOL_TYPES)}")

    escaped = re.escape(symbol_name)
    return [template.replace("{name}", escaped) for template in SYMBOL_PATTERNS[symbol_type]]


def _code_block(body: str) -> str:
    return f"```php\n{body}\n```"


class CodeNavigator:
    """
    Text-producing navigation operations over one source root.

    All operations are stateless apart from the configuration: each call runs
    a fresh search and re-reads the files it shows.
    """

    def __init__(self, config: NavigatorConfig):
        """
        Initialize the navigator.

        Args:
            config: Configuration holding the root, engine, and limits
        """
        self.config = config
        self.root = config.root

    def _safe_directory(self, directory: str) -> str:
        """Validate a root-relative directory and return its normalized form."""
        resolve_safe(self.root, directory)
        return normalize_relative(directory)

    def _search_options(self, **overrides) -> SearchOptions:
        options = {
            'exclude_patterns': self.config.engine.exclude_patterns,
            'file_type': self.config.engine.file_type,
        }
        options.update(overrides)
        return SearchOptions(**options)

    def _full_path(self, match: SearchMatch) -> Optional[Path]:
        """Map a match back to an absolute path, refusing anything outside the root."""
        if not is_within_root(self.root, match.file):
            logger.warning(f"Ignoring match outside root: {match.file}")
            return None
        return Path(self.root) / match.file

    def search_symbol(
        self,
        symbol_name: str,
        symbol_type: str = "any",
        search_directory: Optional[str] = None,
    ) -> str:
        """
        Search for class, function, or constant definitions.

        Each definition is shown with its PHPDoc block and signature.

        Args:
            symbol_name: Name of the symbol to find
            symbol_type: 'class', 'function', 'constant', or 'any'
            search_directory: Optional directory (relative to the root) to limit the search

        Returns:
            Markdown-formatted results

        Raises:
            InvalidPathError: If search_directory escapes the root
            EngineNotFoundError: If ripgrep is not installed
            ValueError: If the symbol name is empty or the type is unknown
        """
        if not symbol_name or not symbol_name.strip():
            raise ValueError("symbol_name is required")
        symbol_name = symbol_name.strip()

        patterns = build_symbol_patterns(symbol_name, symbol_type)
        directories = [self._safe_directory(search_directory)] if search_directory else ["."]

        found: List[Tuple[SearchMatch, str]] = []

        for pattern in patterns:
            try:
                matches = ripgrep_search(
                    pattern,
                    self.root,
                    self._search_options(
                        directories=directories,
                        max_results=self.config.limits.symbol_max_results,
                    ),
                    engine=self.config.engine.binary,
                )
            except (EngineError, ParseError) as e:
                logger.error(f"Pattern search failed: {pattern}: {e}")
                continue

            for match in matches:
                full_path = self._full_path(match)
                if full_path is None:
                    continue
                try:
                    context = extract_symbol_context(full_path, match.line)
                except NavigatorError as e:
                    logger.warning(f"Context extraction failed for {match.location()}: {e}")
                    context = match.matched_text
                found.append((match, context))

        if not found:
            return f'No symbols found matching "{symbol_name}" of type "{symbol_type}"'

        results = [
            f"\n### Result {index}: {match.file}:{match.line}\n\n{_code_block(context)}\n"
            for index, (match, context) in enumerate(found, 1)
        ]

        return f'Found {len(found)} symbol(s) matching "{symbol_name}":\n' + "\n---\n".join(results)

    def find_usage(
        self,
        search_term: str,
        search_directories: Optional[List[str]] = None,
        max_results: Optional[int] = None,
    ) -> str:
        """
        Find examples of how a function, class, or method is used.

        Args:
            search_term: Literal text to search for
            search_directories: Directories to search (defaults to the configured usage directories)
            max_results: Number of examples to show

        Returns:
            Markdown-formatted usage examples

        Raises:
            InvalidPathError: If a search directory escapes the root
            EngineNotFoundError: If ripgrep is not installed
            EngineError: If ripgrep fails
            ParseError: If ripgrep output cannot be parsed
        """
        if not search_term:
            raise ValueError("search_term is required")

        limits = self.config.limits
        directories = search_directories or self.config.usage_directories
        directories = [self._safe_directory(d) for d in directories]
        max_results = max_results if max_results and max_results > 0 else limits.usage_max_results

        matches = ripgrep_search(
            search_term,
            self.root,
            self._search_options(
                directories=directories,
                max_results=max_results * limits.usage_fetch_multiplier,
                fixed_strings=True,
                context_before=3,
                context_after=5,
            ),
            engine=self.config.engine.binary,
        )

        if not matches:
            return f'No usage examples found for "{search_term}" in directories: {", ".join(directories)}'

        shown = matches[:max_results]
        results = []
        for match in shown:
            full_path = self._full_path(match)
            body = match.matched_text
            if full_path is not None:
                try:
                    body = read_file_with_context(
                        full_path,
                        match.line,
                        limits.usage_context_before,
                        limits.usage_context_after,
                    )
                except NavigatorError as e:
                    logger.warning(f"Context read failed for {match.location()}: {e}")
            results.append(f"\n### {match.file}:{match.line}\n\n{_code_block(body)}\n")

        return (
            f'Found {len(matches)} usage(s) of "{search_term}". Showing {len(shown)} examples:\n'
            + "\n---\n".join(results)
        )

    def read_file_content(
        self,
        file_path: str,
        start_line: int = 1,
        end_line: Optional[int] = None,
    ) -> str:
        """
        Read a file, or a section of it, with line numbers.

        Args:
            file_path: Path relative to the root
            start_line: First line to show (1-indexed)
            end_line: Last line to show; defaults to the end of the file or the read limit

        Returns:
            Header, fenced content, and a note when lines remain

        Raises:
            InvalidPathError: If the path escapes the root
            SourceFileNotFoundError: If the file cannot be read
            LineOutOfRangeError: If start_line is past the end of the file
        """
        if not file_path:
            raise InvalidPathError("", "file_path is required")

        full_path = resolve_safe(self.root, file_path)
        display_path = normalize_relative(file_path)

        line_range = read_line_range(
            full_path,
            start_line=start_line or 1,
            end_line=end_line,
            max_lines=self.config.limits.read_max_lines,
        )

        header = (
            f"File: {display_path} "
            f"(lines {line_range.start_line}-{line_range.end_line} of {line_range.total_lines})"
        )
        note = ""
        if line_range.is_truncated():
            note = (
                f"\n\n[... {line_range.remaining_lines()} more lines. "
                f"Use start_line/end_line to read more.]"
            )

        return f"{header}\n\n{_code_block(line_range.render())}{note}"

    def list_structure(self, directory: str = ".", depth: Optional[int] = None) -> str:
        """
        List the directory structure of a path under the root.

        Args:
            directory: Directory relative to the root ('.' or '' for the root)
            depth: Levels to show, clamped to 1..tree_max_depth

        Returns:
            Header and directory tree

        Raises:
            InvalidPathError: If the directory escapes the root or is not a directory
            DirectoryReadError: If a directory cannot be listed
        """
        valid_depth = self.config.limits.clamp_tree_depth(depth)
        directory = directory or "."

        full_path = resolve_safe(self.root, directory)
        display_path = normalize_relative(directory)

        if not os.path.exists(full_path):
            raise InvalidPathError(display_path, "directory not found")
        if not os.path.isdir(full_path):
            raise InvalidPathError(display_path, "not a directory")

        tree = list_directory_structure(
            full_path,
            max_depth=valid_depth,
            extension=self.config.source_extension,
        )
        shown_path = "(root)" if display_path == "." else display_path
        placeholder = f"(empty or no {self.config.source_extension.lstrip('.').upper()} files)"

        return f"Directory structure of {shown_path} (depth: {valid_depth}):\n\n{tree or placeholder}"
