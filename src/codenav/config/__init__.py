"""
Configuration management package for codenav.

This package provides configuration parsing, root resolution, and validation
for the navigator.
"""

from .parser import (
    ConfigParser,
    ConfigParseResult,
    ROOT_ENV_VAR,
    configure_logging,
    load_config,
    validate_moodle_root,
    create_config_template
)
from ..errors import ConfigurationError

__all__ = [
    'ConfigParser',
    'ConfigParseResult',
    'ConfigurationError',
    'ROOT_ENV_VAR',
    'configure_logging',
    'load_config',
    'validate_moodle_root',
    'create_config_template'
]
