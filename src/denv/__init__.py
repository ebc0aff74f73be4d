"""denv: directory-scoped environments for bash and zsh.

This library decides, on every directory change of an interactive shell,
whether to unload the scope that was applied, load the scope declared in the
new directory, or do nothing. A scope is declared by a `denv.yml` (or
`denv.yaml`) file sitting directly in the directory that anchors it:

    version: v1
    set:
      - name: AWS_PROFILE
        value: staging
    softwares:
      terraform: 1.5.7

The engine never mutates the process environment. It returns mutations that
are rendered as a script for the shell to `eval`, and it records the value of
every variable it touches so unloading restores them exactly.

Public API:
    ScopeEngine: State machine driving load/unload transitions
    parse_config, load_config, find_config_file: Config discovery and validation
    VersionResolver, InstalledSoftwareResolver: Software version lookup
    capture, restore: Snapshot store
    render_script, hook_snippet: Script rendering
    DenvError, ConfigValidationError, VersionResolutionError: Exception types

Example:
    ```python
    import os
    from denv import DenvPaths, InstalledSoftwareResolver, ScopeEngine, render_script

    engine = ScopeEngine(InstalledSoftwareResolver(DenvPaths.default()))
    result = engine.handle("/home/me/project", config_present=True, environ=os.environ)
    print(render_script(result.mutations))
    ```
"""

from .config import find_config_file
from .config import load_config
from .config import parse_config
from .engine import ScopeEngine
from .exceptions import ConfigFileError
from .exceptions import ConfigValidationError
from .exceptions import DenvError
from .exceptions import NotInstalledError
from .exceptions import StateError
from .exceptions import ValidationErrorKind
from .exceptions import ValidationIssue
from .exceptions import VersionResolutionError
from .models import ActiveScope
from .models import DenvPaths
from .models import HookResult
from .models import RestoreVar
from .models import ScopeConfig
from .models import ScopeSnapshot
from .models import SetVar
from .models import Shell
from .models import Software
from .models import UnsetVar
from .models import Variable
from .render import hook_snippet
from .render import render_script
from .resolver import InstalledSoftwareResolver
from .resolver import VersionResolver
from .snapshot import capture
from .snapshot import restore

__version__ = "0.1.0"

__all__ = [
    "ScopeEngine",
    "ScopeConfig",
    "Variable",
    "Software",
    "Shell",
    "SetVar",
    "UnsetVar",
    "RestoreVar",
    "ScopeSnapshot",
    "ActiveScope",
    "HookResult",
    "DenvPaths",
    "parse_config",
    "load_config",
    "find_config_file",
    "VersionResolver",
    "InstalledSoftwareResolver",
    "capture",
    "restore",
    "render_script",
    "hook_snippet",
    "DenvError",
    "ConfigValidationError",
    "ConfigFileError",
    "ValidationErrorKind",
    "ValidationIssue",
    "VersionResolutionError",
    "NotInstalledError",
    "StateError",
]
