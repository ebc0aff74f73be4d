"""Config file discovery, parsing and validation."""

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .exceptions import ValidationErrorKind
from .exceptions import ValidationIssue
from .models import ScopeConfig
from .models import Software
from .models import Variable

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("denv.yml", "denv.yaml")

TOP_LEVEL_KEYS = frozenset({"set", "softwares", "version"})
VARIABLE_KEYS = frozenset({"name", "value"})

# Names denv manages itself and a `set` entry may not override.
RESERVED_NAMES = frozenset({"PATH"})
RESERVED_PREFIX = "DENV_"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_shell_identifier(name: str) -> bool:
    """Check if `name` can be used with `export`/`unset` in bash and zsh."""
    return bool(_IDENTIFIER.match(name))


def find_config_file(directory: Path, filename: str | None = None) -> Path | None:
    """Find the config file located directly in `directory`.

    Parent directories are never searched.

    Args:
        directory: Directory to look in
        filename: Override for the recognized file names

    Returns:
        Path to the config file or None if there is none
    """
    candidates = (filename,) if filename else CONFIG_FILENAMES
    for candidate in candidates:
        path = directory / candidate
        if path.is_file():
            return path
    return None


def load_config(path: Path) -> ScopeConfig:
    """Read and validate a config file.

    Args:
        path: Path to the config file

    Returns:
        Validated ScopeConfig

    Raises:
        ConfigFileError: If the file cannot be read
        ConfigValidationError: If the content is invalid
    """
    logger.debug(f"Loading configuration from {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(str(path), f"Unable to read {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise ConfigFileError(str(path), f"Unable to read {path}: not valid UTF-8 ({e.reason})") from e
    return parse_config(text, str(path))


def parse_config(text: str, location: str = "<string>") -> ScopeConfig:
    """Parse and validate config text.

    Every violated constraint is collected before raising, so one error
    reports all problems of the file.

    Args:
        text: Raw YAML text
        location: Label used in error messages (usually the file path)

    Returns:
        Validated ScopeConfig

    Raises:
        ConfigValidationError: If the text is not a valid config
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        issue = ValidationIssue(ValidationErrorKind.MALFORMED, f"Invalid YAML: {e}")
        raise ConfigValidationError(location, [issue]) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        issue = ValidationIssue(
            ValidationErrorKind.MALFORMED,
            f"Configuration must be a mapping, got {_type_name(data)}",
        )
        raise ConfigValidationError(location, [issue])

    validator = _Validator()
    config = validator.validate(data)
    if validator.issues:
        raise ConfigValidationError(location, validator.issues)
    return config


class _Validator:
    """Walks a parsed document and records every violated constraint."""

    def __init__(self):
        self.issues: list[ValidationIssue] = []

    def fail(self, kind: ValidationErrorKind, message: str) -> None:
        self.issues.append(ValidationIssue(kind, message))

    def validate(self, data: dict[Any, Any]) -> ScopeConfig:
        for key in data:
            if key not in TOP_LEVEL_KEYS:
                self.fail(ValidationErrorKind.UNKNOWN_KEY, f"Unknown key '{key}'")

        schema_version = self._schema_version(data)
        variables = self._variables(data.get("set"))
        softwares = self._softwares(data.get("softwares"))
        return ScopeConfig(variables=variables, softwares=softwares, schema_version=schema_version)

    def _schema_version(self, data: dict[Any, Any]) -> str:
        if "version" not in data:
            self.fail(ValidationErrorKind.MISSING_KEY, "Missing configuration version")
            return ""
        version = data["version"]
        if not isinstance(version, str):
            self.fail(
                ValidationErrorKind.WRONG_TYPE,
                f"'version' must be a string, got {_type_name(version)}",
            )
            return ""
        return version

    def _variables(self, entries: Any) -> tuple[Variable, ...]:
        if entries is None:
            return ()
        if not isinstance(entries, list):
            self.fail(ValidationErrorKind.WRONG_TYPE, f"'set' must be a list, got {_type_name(entries)}")
            return ()

        variables: list[Variable] = []
        seen: set[str] = set()
        for index, entry in enumerate(entries):
            where = f"set[{index}]"
            if not isinstance(entry, dict):
                self.fail(ValidationErrorKind.WRONG_TYPE, f"{where} must be a mapping, got {_type_name(entry)}")
                continue

            for key in entry:
                if key not in VARIABLE_KEYS:
                    self.fail(ValidationErrorKind.UNKNOWN_KEY, f"Unknown key '{key}' in {where}")
            missing = sorted(VARIABLE_KEYS - entry.keys())
            for key in missing:
                self.fail(ValidationErrorKind.MISSING_KEY, f"{where} is missing '{key}'")
            if missing:
                continue

            name = entry["name"]
            value = entry["value"]
            if not isinstance(name, str):
                self.fail(ValidationErrorKind.WRONG_TYPE, f"{where}.name must be a string, got {_type_name(name)}")
                continue
            if not self._check_name(name, where):
                continue
            if not isinstance(value, (bool, int, float, str)):
                self.fail(
                    ValidationErrorKind.WRONG_TYPE,
                    f"{where}.value must be a boolean, integer, number or string, got {_type_name(value)}",
                )
                continue
            if name in seen:
                self.fail(ValidationErrorKind.DUPLICATE_NAME, f"Variable '{name}' is declared more than once")
                continue

            seen.add(name)
            variables.append(Variable(name=name, value=value))
        return tuple(variables)

    def _check_name(self, name: str, where: str) -> bool:
        if not is_shell_identifier(name):
            self.fail(ValidationErrorKind.INVALID_NAME, f"{where}.name '{name}' is not a valid variable name")
            return False
        if name in RESERVED_NAMES or name.startswith(RESERVED_PREFIX):
            self.fail(ValidationErrorKind.INVALID_NAME, f"{where}.name '{name}' is reserved by denv")
            return False
        return True

    def _softwares(self, entries: Any) -> tuple[tuple[Software, str], ...]:
        if entries is None:
            return ()
        if not isinstance(entries, dict):
            self.fail(
                ValidationErrorKind.WRONG_TYPE,
                f"'softwares' must be a mapping, got {_type_name(entries)}",
            )
            return ()

        softwares: list[tuple[Software, str]] = []
        for key, version in entries.items():
            software = Software.from_key(key) if isinstance(key, str) else None
            if software is None:
                self.fail(ValidationErrorKind.UNRECOGNIZED_SOFTWARE, f"Unrecognized software '{key}'")
                continue
            if not isinstance(version, str):
                self.fail(
                    ValidationErrorKind.WRONG_TYPE,
                    f"softwares.{key} must be a version string, got {_type_name(version)}",
                )
                continue
            softwares.append((software, version))
        return tuple(softwares)


def load_directory_config(directory: Path, filename: str | None = None) -> ScopeConfig:
    """Load the config file anchoring a scope at `directory`.

    Args:
        directory: Scope root
        filename: Override for the recognized file names

    Raises:
        ConfigFileError: If the directory holds no config file
        ConfigValidationError: If the config is invalid
    """
    path = find_config_file(directory, filename)
    if path is None:
        names = filename or " or ".join(CONFIG_FILENAMES)
        raise ConfigFileError(str(directory), f"No {names} found in {directory}")
    return load_config(path)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
