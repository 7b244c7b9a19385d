"""
Data models for codenav.

This module contains the core data structures used throughout the system.
"""

from .search import (
    SearchMatch,
    SearchOptions,
    MatchRecord,
    ContextRecord,
    UnknownRecord,
    EngineOutput,
    LineRange,
)
from .config import NavigatorConfig, EngineConfig, LimitsConfig, LogLevel

__all__ = [
    'SearchMatch',
    'SearchOptions',
    'MatchRecord',
    'ContextRecord',
    'UnknownRecord',
    'EngineOutput',
    'LineRange',
    'NavigatorConfig',
    'EngineConfig',
    'LimitsConfig',
    'LogLevel',
]
