from typing import Any, Dict, Mapping, Optional
import dataclasses
from dataclasses import dataclass
import logging
import os
import tomllib
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILE = '.revdiff.toml'
PYPROJECT_FILE = 'pyproject.toml'
ENV_PREFIX = 'REVDIFF_'

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class RevdiffError(Exception):
    """Base class for errors raised by revdiff."""
    pass


class ConfigError(RevdiffError):
    """The configuration file or environment holds an unknown key or a bad value."""
    pass


################################################################################
# Config
################################################################################

@dataclass
class Config:
    repo_path: Path = Path('.')
    default_branch: str = 'main'
    revision_limit: int = 100
    context_lines: int = 3
    detect_renames: bool = True
    log_level: str = 'INFO'

    # File the values came from, shown by `revdiff.py config check`.
    source: Optional[Path] = None

    def __post_init__(self):
        if not isinstance(self.repo_path, Path):
            self.repo_path = Path(self.repo_path)
        if self.revision_limit <= 0:
            raise ConfigError(f"revision_limit must be positive, got {self.revision_limit}")
        if self.context_lines < 0:
            raise ConfigError(f"context_lines cannot be negative, got {self.context_lines}")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")

    def diff_flags(self, patch: bool = True) -> list[str]:
        """Flags the backend adds to `git diff`/`git show`; stat-only queries get no `-U`."""
        flags = [f'-U{self.context_lines}'] if patch else []
        if self.detect_renames:
            flags.append('-M')
        return flags


_SETTABLE = {f.name: f for f in dataclasses.fields(Config) if f.name != 'source'}


def _coerce(name: str, value: Any) -> Any:
    # Environment values always arrive as strings; TOML values arrive typed.
    default = _SETTABLE[name].default
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('1', 'true', 'yes', 'on'):
            return True
        if isinstance(value, str) and value.lower() in ('0', 'false', 'no', 'off'):
            return False
        raise ConfigError(f"{name} must be a boolean, got {value!r}")
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ConfigError(f"{name} must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    if isinstance(default, Path):
        return Path(value)
    return value


def _apply(values: Dict[str, Any], settings: Mapping[str, Any], origin: str) -> None:
    for key, value in settings.items():
        name = key.replace('-', '_')
        if name not in _SETTABLE:
            raise ConfigError(f"Unknown setting '{key}' in {origin}")
        values[name] = _coerce(name, value)


def find_config_file(start: Path) -> Optional[Path]:
    """
    Walks up from `start` looking for `.revdiff.toml`, or a `pyproject.toml`
    with a `[tool.revdiff]` table. The first match wins.
    """
    for directory in [start, *start.parents]:
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
        pyproject = directory / PYPROJECT_FILE
        if pyproject.is_file() and 'revdiff' in _read_toml(pyproject).get('tool', {}):
            return pyproject
    return None


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'rb') as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def load_config(start: Path | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """
    Builds the configuration: defaults, then the config file, then
    `REVDIFF_*` environment variables.

    A relative `repo_path` in a config file is resolved against the file's
    directory.
    """
    start = (start or Path.cwd()).resolve()
    environ = os.environ if environ is None else environ

    values: Dict[str, Any] = {}
    source = find_config_file(start)
    if source is not None:
        data = _read_toml(source)
        settings = data.get('tool', {}).get('revdiff', {}) if source.name == PYPROJECT_FILE else data
        _apply(values, settings, str(source))
        if 'repo_path' in values and not values['repo_path'].is_absolute():
            values['repo_path'] = (source.parent / values['repo_path']).resolve()
        logger.debug(f"Loaded configuration from {source}")
    values.setdefault('repo_path', start)

    env_settings = {
        key[len(ENV_PREFIX):].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX)
    }
    _apply(values, env_settings, 'environment')

    return Config(**values, source=source)
