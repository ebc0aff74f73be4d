"""Rendering of environment mutations and shell hooks."""

from collections.abc import Iterable

from .config import is_shell_identifier
from .models import EnvMutation
from .models import RestoreVar
from .models import SetVar
from .models import Shell
from .models import UnsetVar

# Last directory the hook saw; the hook only calls denv when $PWD changes.
CWD_VAR_NAME = "DENV_CWD"

# Characters that keep a special meaning inside double quotes.
_DOUBLE_QUOTE_SPECIALS = {
    "\\": "\\\\",
    '"': '\\"',
    "$": "\\$",
    "`": "\\`",
}

_BASH_HOOK = """_denv_hook() {
  local previous_exit_status=$?
  if [[ "$PWD" != "${<cwd_var>:-}" ]]; then
    export <cwd_var>="$PWD"
    eval "$(<command> export bash)"
  fi
  return $previous_exit_status
}
if [[ ";${PROMPT_COMMAND[*]:-};" != *";_denv_hook;"* ]]; then
  PROMPT_COMMAND="_denv_hook${PROMPT_COMMAND:+;$PROMPT_COMMAND}"
fi
"""

_ZSH_HOOK = """_denv_hook() {
  if [[ "$PWD" != "${<cwd_var>:-}" ]]; then
    export <cwd_var>="$PWD"
    eval "$(<command> export zsh)"
  fi
}
typeset -ag precmd_functions chpwd_functions
if (( ! ${precmd_functions[(I)_denv_hook]} )); then
  precmd_functions=(_denv_hook $precmd_functions)
fi
if (( ! ${chpwd_functions[(I)_denv_hook]} )); then
  chpwd_functions=(_denv_hook $chpwd_functions)
fi
"""


def quote(value: str) -> str:
    """Double-quote a value so the shell reads it back literally.

    Examples:
        >>> quote('say "hi" to $USER')
        '"say \\\\"hi\\\\" to \\\\$USER"'
    """
    escaped = "".join(_DOUBLE_QUOTE_SPECIALS.get(char, char) for char in value)
    return f'"{escaped}"'


def render_mutation(mutation: EnvMutation) -> str:
    """Render one mutation as a shell statement.

    Raises:
        ValueError: If the variable name is not a shell identifier
    """
    if not is_shell_identifier(mutation.name):
        raise ValueError(f"'{mutation.name}' is not a valid variable name")

    if isinstance(mutation, SetVar):
        return f"export {mutation.name}={quote(mutation.value)}"
    if isinstance(mutation, UnsetVar):
        return f"unset {mutation.name}"
    if isinstance(mutation, RestoreVar):
        if mutation.previous is None:
            return f"unset {mutation.name}"
        return f"export {mutation.name}={quote(mutation.previous)}"
    raise TypeError(f"Unsupported mutation: {mutation!r}")


def render_script(mutations: Iterable[EnvMutation]) -> str:
    """Render mutations as a script for bash or zsh to `eval`.

    Args:
        mutations: Mutations in application order

    Returns:
        One statement per line, or an empty string when there is nothing to do
    """
    lines = [render_mutation(mutation) for mutation in mutations]
    return "".join(f"{line}\n" for line in lines)


def hook_snippet(shell: Shell, command: str = "denv") -> str:
    """Shell code that calls denv on every directory change.

    Args:
        shell: Target shell
        command: How to invoke denv, including global options

    Returns:
        Snippet meant for `eval "$(denv hook <shell>)"` in the shell rc file
    """
    template = _BASH_HOOK if shell is Shell.BASH else _ZSH_HOOK
    return template.replace("<cwd_var>", CWD_VAR_NAME).replace("<command>", command)
