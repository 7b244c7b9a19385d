"""
Configuration data models for codenav.

This module defines the configuration structures for the navigator: the source
root, the search engine invocation defaults, and the output limits applied by
the navigation tools.
"""

from typing import Dict, List, Optional, Any
from pathlib import Path
from enum import Enum
import logging
from pydantic import BaseModel, Field, field_validator, model_validator

from .search import DEFAULT_EXCLUDE_PATTERNS


class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class EngineConfig(BaseModel):
    """
    Configuration for the ripgrep search engine.

    Attributes:
        binary: Name or path of the ripgrep executable
        file_type: ripgrep file type used for symbol and usage searches
        exclude_patterns: Directory globs excluded from every search
    """

    binary: str = Field("rg", min_length=1, description="ripgrep executable")
    file_type: str = Field("php", min_length=1, description="ripgrep file type filter")
    exclude_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Directory globs excluded from every search"
    )

    @field_validator('binary')
    @classmethod
    def validate_binary(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Engine binary cannot be empty")
        return v.strip()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class LimitsConfig(BaseModel):
    """
    Output limits for the navigation tools.

    Attributes:
        symbol_max_results: Engine cap for each symbol pattern search
        usage_max_results: Default number of usage examples shown
        usage_fetch_multiplier: Usage searches fetch this many times more matches
        usage_context_before: Lines shown before each usage example
        usage_context_after: Lines shown after each usage example
        read_max_lines: Maximum lines returned by one file read
        tree_default_depth: Depth used when none is requested
        tree_max_depth: Upper clamp for requested tree depth
    """

    symbol_max_results: int = Field(10, gt=0)
    usage_max_results: int = Field(5, gt=0)
    usage_fetch_multiplier: int = Field(3, gt=0)
    usage_context_before: int = Field(5, ge=0)
    usage_context_after: int = Field(10, ge=0)
    read_max_lines: int = Field(500, gt=0)
    tree_default_depth: int = Field(2, gt=0)
    tree_max_depth: int = Field(4, gt=0)

    @model_validator(mode='after')
    def validate_tree_depths(self):
        """Keep the default tree depth within the clamp."""
        if self.tree_default_depth > self.tree_max_depth:
            raise ValueError("tree_default_depth must be <= tree_max_depth")
        return self

    def clamp_tree_depth(self, depth: Optional[int]) -> int:
        """Clamp a requested depth to 1..tree_max_depth."""
        if not depth:
            depth = self.tree_default_depth
        return max(1, min(self.tree_max_depth, depth))

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class NavigatorConfig(BaseModel):
    """
    Main configuration for codenav.

    Attributes:
        root: The source tree every relative path resolves against
        engine: Search engine settings
        limits: Output limits
        source_extension: Extension of the files shown in directory trees
        usage_directories: Directories searched for usage examples by default
        log_level: Logging level for the command line
    """

    root: str = Field(..., min_length=1, description="Source tree root")
    engine: EngineConfig = Field(default_factory=EngineConfig, description="Search engine settings")
    limits: LimitsConfig = Field(default_factory=LimitsConfig, description="Output limits")
    source_extension: str = Field(".php", description="Extension of listed source files")
    usage_directories: List[str] = Field(
        default_factory=lambda: ["lib", "course"],
        description="Default directories for usage searches"
    )
    log_level: LogLevel = Field(LogLevel.INFO, description="Logging level")

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Expand and absolutize the root path."""
        if not v or not v.strip():
            raise ValueError("Root directory cannot be empty")
        return str(Path(v.strip()).expanduser().resolve())

    @field_validator('source_extension')
    @classmethod
    def validate_source_extension(cls, v: str) -> str:
        """Normalize extension to include leading dot."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Source extension cannot be empty")
        if not v.startswith('.'):
            return '.' + v
        return v

    @field_validator('usage_directories')
    @classmethod
    def validate_usage_directories(cls, v: List[str]) -> List[str]:
        normalized = [d.strip() for d in v if d and d.strip()]
        return normalized or ["."]

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v) -> LogLevel:
        """Validate and convert log level to enum."""
        if isinstance(v, str):
            try:
                return LogLevel(v.upper())
            except ValueError:
                raise ValueError(f"Invalid log level: {v}")
        return v

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        return getattr(logging, self.log_level.value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['engine'] = self.engine.to_dict()
        data['limits'] = self.limits.to_dict()
        data['log_level'] = self.log_level.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NavigatorConfig':
        """Create a NavigatorConfig from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        parts = [f"Root: {self.root}"]
        parts.append(f"Engine: {self.engine.binary} (--type {self.engine.file_type})")
        parts.append(f"Extension: {self.source_extension}")
        return " | ".join(parts)
