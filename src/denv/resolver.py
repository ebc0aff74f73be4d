"""Resolution of software versions into directories to put on PATH."""

import logging
from abc import ABC
from abc import abstractmethod
from pathlib import Path

from .exceptions import NotInstalledError
from .models import DenvPaths
from .models import Software

logger = logging.getLogger(__name__)


class VersionResolver(ABC):
    """Turns a `(software, version)` pair into a directory holding its binaries."""

    @abstractmethod
    def resolve(self, software: Software, version: str) -> Path:
        """Resolve an installed software version.

        Args:
            software: Recognized software identifier
            version: Version string from the config file

        Returns:
            Absolute directory to prepend to PATH

        Raises:
            VersionResolutionError: If the version is not available
        """


class InstalledSoftwareResolver(VersionResolver):
    """Looks up versions installed under `<denv home>/softwares/<software>/<version>`.

    Installing is out of scope; a version counts as available once its
    directory exists.

    Args:
        paths: denv filesystem locations
    """

    def __init__(self, paths: DenvPaths):
        self.paths = paths

    def resolve(self, software: Software, version: str) -> Path:
        # Reject path traversal through the version string
        if not version or "/" in version or version in (".", ".."):
            raise NotInstalledError(software.value, version)

        directory = self.paths.software_dir(software, version)
        try:
            installed = directory.is_dir()
        except OSError as e:
            logger.debug(f"Unable to check {directory}: {e}")
            installed = False
        if not installed:
            raise NotInstalledError(software.value, version, searched=str(directory))

        logger.debug(f"Resolved {software.value} {version} to {directory}")
        return directory.resolve()
