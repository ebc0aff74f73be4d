"""Exceptions for denv."""

from dataclasses import dataclass
from enum import Enum


class DenvError(Exception):
    """Base exception for denv errors."""

    def describe(self) -> str:
        """Human-readable message shown to the user."""
        return str(self)


class ValidationErrorKind(Enum):
    """Closed set of reasons a config file can be rejected."""

    MALFORMED = "malformed"
    UNKNOWN_KEY = "unknown-key"
    MISSING_KEY = "missing-key"
    WRONG_TYPE = "wrong-type"
    DUPLICATE_NAME = "duplicate-name"
    INVALID_NAME = "invalid-name"
    UNRECOGNIZED_SOFTWARE = "unrecognized-software"


@dataclass(frozen=True)
class ValidationIssue:
    """One violated constraint in a config file."""

    kind: ValidationErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


class ConfigValidationError(DenvError):
    """Config file is malformed or violates a structural constraint.

    Attributes:
        location: Where the config came from (file path or label)
        issues: Every violated constraint, in document order
    """

    def __init__(self, location: str, issues: list[ValidationIssue]):
        self.location = location
        self.issues = list(issues)
        super().__init__(f"Invalid configuration {location}")

    @property
    def kinds(self) -> set[ValidationErrorKind]:
        return {issue.kind for issue in self.issues}

    def describe(self) -> str:
        """Render the error and all of its issues as one message."""
        lines = [str(self)]
        lines.extend(f"  - {issue}" for issue in self.issues)
        return "\n".join(lines)


class ConfigFileError(ConfigValidationError):
    """Config file could not be read."""

    def __init__(self, location: str, reason: str):
        super().__init__(location, [ValidationIssue(ValidationErrorKind.MALFORMED, reason)])


class VersionResolutionError(DenvError):
    """A declared software version could not be resolved to a directory."""

    pass


class NotInstalledError(VersionResolutionError):
    """Requested software version is not installed."""

    def __init__(self, software: str, version: str, searched: str | None = None):
        self.software = software
        self.version = version
        self.searched = searched
        message = f"{software} {version} is not installed"
        if searched:
            message = f"{message} (looked in {searched})"
        super().__init__(message)


class StateError(DenvError):
    """Active scope state stored in the shell environment is unreadable."""

    pass
