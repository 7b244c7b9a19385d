"""
Navigation tools for codenav.

This module contains the primitives the navigator is built from: path
containment checks, ripgrep search, source excerpts, and directory trees.
"""

from .path_guard import resolve_safe, is_within_root
from .ripgrep import ripgrep_search, parse_engine_output, validate_ripgrep_installed
from .context import read_file_with_context, extract_symbol_context, read_line_range
from .tree import list_directory_structure

__all__ = [
    'resolve_safe',
    'is_within_root',
    'ripgrep_search',
    'parse_engine_output',
    'validate_ripgrep_installed',
    'read_file_with_context',
    'extract_symbol_context',
    'read_line_range',
    'list_directory_structure',
]
