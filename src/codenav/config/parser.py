"""
YAML configuration for codenav.

Settings come from a YAML file (named on the command line or discovered in
the working directory, the home directory, or ~/.config/codenav) layered over
built-in defaults. The source root is taken from the first of: --moodle-path,
the MOODLE_SRC_PATH environment variable, the file's 'root' key, and finally
the current directory.
"""

import os
import sys
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple, Union
import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from ..errors import ConfigurationError
from ..models.config import EngineConfig, LimitsConfig, NavigatorConfig


logger = logging.getLogger(__name__)

ROOT_ENV_VAR = "MOODLE_SRC_PATH"
MOODLE_MARKERS = ["version.php", "config-dist.php", "lib", "mod"]
MIN_MOODLE_MARKERS = 2

TEMPLATE_SECTIONS = [
    ("root", "Moodle source tree to navigate"),
    ("engine", "ripgrep settings"),
    ("limits", "Output limits"),
    ("source_extension", "Files shown in directory trees"),
    ("usage_directories", "Directories searched for usage examples"),
    ("log_level", "Logging level (DEBUG, INFO, WARNING, ERROR)"),
]


@dataclass
class ConfigParseResult:
    """
    Outcome of loading the navigator configuration.

    Attributes:
        config: Validated navigator settings
        warnings: Problems that did not stop loading
        config_path: The YAML file that was read, if any
        is_default: True when no file was found and only defaults apply
    """
    config: NavigatorConfig
    warnings: List[str] = field(default_factory=list)
    config_path: Optional[Path] = None
    is_default: bool = False


class ConfigParser:
    """Reads codenav YAML files and turns them into a NavigatorConfig."""

    DEFAULT_CONFIG_NAMES = [
        '.codenav.yaml',
        '.codenav.yml',
        'codenav.yaml',
        'codenav.yml',
    ]

    def __init__(self, strict_mode: bool = False, environ: Optional[Dict[str, str]] = None):
        """
        Args:
            strict_mode: Raise instead of returning warnings
            environ: Mapping consulted for MOODLE_SRC_PATH; os.environ when omitted
        """
        self.strict_mode = strict_mode
        self.environ = os.environ if environ is None else environ
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def load_config(
        self,
        config_path: Optional[Union[str, Path]] = None,
        root_override: Optional[str] = None,
    ) -> ConfigParseResult:
        """
        Build the navigator configuration.

        Args:
            config_path: Explicit YAML file; when omitted the default locations are searched
            root_override: Root directory given on the command line

        Returns:
            ConfigParseResult with the validated config and any warnings

        Raises:
            ConfigurationError: On a missing explicit file, bad YAML, or invalid values
        """
        if config_path:
            source = Path(config_path)
            if not source.is_file():
                raise ConfigurationError(f"Configuration file not found: {source}")
            file_data = self._read_mapping(source)
        else:
            source, file_data = self._discover()

        result = ConfigParseResult(
            config=None,
            config_path=source,
            is_default=file_data is None,
        )

        settings = self._get_default_config()
        settings.update(file_data or {})

        settings['root'], origin = self._resolve_root(root_override, settings.get('root'))
        if origin == 'cwd':
            message = f"No path configured, using current directory: {settings['root']}"
            self.logger.warning(message)
            result.warnings.append(message)

        try:
            result.config = NavigatorConfig.from_dict(settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        if result.is_default:
            result.warnings.append("No configuration file found, using default settings")

        if self.strict_mode and result.warnings:
            raise ConfigurationError("Refusing warnings in strict mode: " + "; ".join(result.warnings))

        self.logger.info(f"Configuration loaded from {source or 'defaults'} (root from {origin})")
        return result

    def _resolve_root(self, root_override: Optional[str], file_root: Optional[str]) -> Tuple[str, str]:
        """Return (absolute root, where it came from)."""
        candidates = [
            (root_override, 'command line'),
            (self.environ.get(ROOT_ENV_VAR), ROOT_ENV_VAR),
            (file_root, 'config file'),
        ]
        for value, origin in candidates:
            if value:
                return str(Path(value).expanduser().resolve()), origin
        return str(Path.cwd()), 'cwd'

    def _discover(self) -> Tuple[Optional[Path], Optional[Dict[str, Any]]]:
        """Search the default locations; the first readable file wins."""
        home = Path.home()
        for directory in (Path.cwd(), home, home / '.config' / 'codenav'):
            for name in self.DEFAULT_CONFIG_NAMES:
                candidate = directory / name
                if not candidate.is_file():
                    continue
                try:
                    data = self._read_mapping(candidate)
                except ConfigurationError as e:
                    self.logger.warning(f"Skipping {candidate}: {e}")
                    continue
                self.logger.info(f"Using configuration file {candidate}")
                return candidate, data

        self.logger.info("No codenav configuration file found")
        return None, None

    def _read_mapping(self, file_path: Path) -> Dict[str, Any]:
        """
        Parse a YAML file that must hold a mapping (or nothing).

        Raises:
            ConfigurationError: If the file is unreadable, malformed, or not a mapping
        """
        try:
            text = file_path.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {file_path}: {e}") from e

        if data is None:
            self.logger.warning(f"{file_path} is empty, using defaults")
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"{file_path} must contain a YAML object, not a {type(data).__name__}"
            )
        return data

    def _get_default_config(self) -> Dict[str, Any]:
        """Default settings, without a root."""
        return {
            'engine': EngineConfig().to_dict(),
            'limits': LimitsConfig().to_dict(),
            'source_extension': '.php',
            'usage_directories': ['lib', 'course'],
            'log_level': 'INFO',
        }

    def get_config_template(self) -> str:
        """Commented YAML showing every setting with its default."""
        values = {'root': '~/moodle', **self._get_default_config()}

        out = [
            "# codenav configuration",
            f"# The root can also be set with --moodle-path or the {ROOT_ENV_VAR} environment variable",
            "",
        ]
        for key, comment in TEMPLATE_SECTIONS:
            dumped = yaml.dump({key: values[key]}, default_flow_style=False, sort_keys=False)
            out.extend([f"# {comment}", dumped.rstrip(), ""])
        return "\n".join(out)


def validate_moodle_root(root: Union[str, Path]) -> Optional[str]:
    """
    Validate that the root exists and looks like a Moodle installation.

    Args:
        root: Root directory to check

    Returns:
        A warning message if the root does not look like Moodle, else None

    Raises:
        ConfigurationError: If the root does not exist or is not a directory
    """
    root_path = Path(root)

    if not root_path.exists():
        raise ConfigurationError(f"Moodle path does not exist: {root_path}")

    if not root_path.is_dir():
        raise ConfigurationError(f"Path is not a directory: {root_path}")

    found = sum(1 for marker in MOODLE_MARKERS if (root_path / marker).exists())
    if found < MIN_MOODLE_MARKERS:
        message = (
            f"{root_path} may not be a valid Moodle installation. "
            f"Expected files not found. Proceeding anyway..."
        )
        logger.warning(message)
        return message

    return None


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Send log records to stderr, keeping stdout for command output.

    Args:
        level: Logging level (numeric or name)
    """
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="[codenav] %(levelname)s %(name)s: %(message)s",
    )


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    root_override: Optional[str] = None,
    strict_mode: bool = False,
) -> ConfigParseResult:
    """Load the configuration with a fresh ConfigParser."""
    return ConfigParser(strict_mode=strict_mode).load_config(config_path, root_override=root_override)


def create_config_template(output_path: Union[str, Path]) -> None:
    """
    Write the commented configuration template to output_path.

    Raises:
        ConfigurationError: If the file cannot be written
    """
    target = Path(output_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(ConfigParser().get_config_template(), encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Cannot write template to {target}: {e}") from e
