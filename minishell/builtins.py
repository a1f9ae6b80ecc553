"""Commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import os
import sys
from typing import Optional, Sequence, TextIO

from minishell.env import Environment, ShellState

__all__ = [
    "ExitShell",
    "is_builtin",
    "run_builtin",
    "echo",
    "is_valid_identifier",
    "export_listing",
    "export",
    "unset",
    "env_builtin",
    "pwd",
    "cd",
    "shell_exit",
]

BUILTINS = frozenset({"exit", "env", "pwd", "cd", "export", "unset", "echo"})

_LLONG_MAX = 2**63 - 1
_LLONG_MIN = -(2**63)
_SPACES = " \t\n\v\f\r"


class ExitShell(Exception):
    """Raised by ``exit`` to end the shell with ``status``."""

    def __init__(self, status: int) -> None:
        super().__init__(f"exit {status}")
        self.status = status


def is_builtin(argv: Sequence[str]) -> bool:
    """Tell whether ``argv`` names a built-in command."""
    return bool(argv) and argv[0] in BUILTINS


def run_builtin(state: ShellState, argv: Sequence[str], out: TextIO) -> int:
    """Run the built-in named by ``argv[0]``, writing its output to ``out``.

    Returns the new exit status, which is also stored in ``state``.
    A name that is not a built-in gives status 1.
    """
    if not is_builtin(argv):
        state.exit_status = 1
        return 1
    name = argv[0]
    if name == "exit":
        shell_exit(argv)
    elif name == "env":
        env_builtin(state, argv, out)
    elif name == "pwd":
        pwd(state, out)
    elif name == "cd":
        cd(state, argv)
    elif name == "export":
        export(state, argv, out)
    elif name == "unset":
        unset(state, argv)
    elif name == "echo":
        out.write(echo(argv))
    return state.exit_status


def _is_n_option(arg: str) -> bool:
    return arg.startswith("-") and len(arg) > 1 and set(arg[1:]) == {"n"}


def echo(argv: Sequence[str]) -> str:
    """Return the text ``echo`` prints for ``argv``."""
    args = list(argv[1:])
    if not args:
        return "\n"
    if not args[0].startswith("-"):
        return " ".join(args) + "\n"
    index = 0
    while index < len(args) and _is_n_option(args[index]):
        index += 1
    rest = args[index:]
    if not rest:
        return ""
    prefix = "\n" if len(rest[0]) == 1 else ""
    return prefix + " ".join(rest)


def _is_ascii_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def _is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def is_valid_identifier(arg: Optional[str]) -> bool:
    """Tell whether ``arg`` starts with a valid variable name for ``export``."""
    if not arg or not (_is_ascii_alpha(arg[0]) or arg[0] == "_"):
        return False
    for index in range(1, len(arg)):
        char = arg[index]
        if char == "=" or arg.startswith("+=", index):
            break
        if not (_is_ascii_alnum(char) or char == "_"):
            return False
    return True


def export_listing(env: Environment) -> str:
    """Sort ``env`` in place and render it as ``declare -x`` lines."""
    env.sort()
    lines = []
    for name, value in env.items():
        if name == "_":
            continue
        if value is None:
            lines.append(f"declare -x {name}\n")
        else:
            lines.append(f'declare -x {name}="{value}"\n')
    return "".join(lines)


def _export_one(env: Environment, arg: str) -> None:
    name, sep, value = arg.partition("=")
    if not sep:
        env.declare(arg)
    elif name.endswith("+"):
        env.append(name[:-1], value)
    else:
        env.set(name, value)


def export(state: ShellState, argv: Sequence[str], out: TextIO) -> None:
    """Set, append to or declare variables; list them when given no argument."""
    if len(argv) == 1:
        out.write(export_listing(state.env))
        return
    for arg in argv[1:]:
        if not is_valid_identifier(arg):
            out.write(f"minishell: export: `{arg}`: not a valid identifier\n")
            state.exit_status = 1
            return
        _export_one(state.env, arg)
    state.exit_status = 0


def unset(state: ShellState, argv: Sequence[str]) -> None:
    """Remove every named variable."""
    for name in argv[1:]:
        state.env.unset(name)
    state.exit_status = 0


def env_builtin(state: ShellState, argv: Sequence[str], out: TextIO) -> None:
    """Print every variable as ``NAME=value``; refuse any argument."""
    if len(argv) == 1:
        for name, value in state.env.items():
            out.write(f"{name}={value if value is not None else ''}\n")
    else:
        out.write(f"env: \u2018{argv[1]}\u2019: No such file or directory\n")
        state.exit_status = 1


def _cwd() -> Optional[str]:
    try:
        return os.getcwd()
    except OSError:
        return None


def pwd(state: ShellState, out: TextIO) -> None:
    """Print the working directory, falling back to ``$PWD``."""
    current = _cwd()
    if current is not None:
        out.write(current + "\n")
        state.exit_status = 0
        return
    remembered = state.env.get("PWD")
    if remembered is not None:
        out.write(remembered + "\n")
        state.exit_status = 0
    else:
        out.write(
            "minishell: pwd: error retrieving current directory: getcwd: "
            "cannot access parent directories: No such file or directory\n"
        )
        state.exit_status = 1


def _record_cwd(state: ShellState, name: str) -> None:
    current = _cwd()
    if current is None:
        if name == "PWD":
            print("getcwd: No such file or directory", file=sys.stderr)
        state.exit_status = 1
        return
    state.env.update(name, current)


def _go_home(state: ShellState) -> None:
    if not state.env.contains("HOME"):
        print("minishell: cd : HOME not set", file=sys.stderr)
        state.exit_status = 1
        return
    if state.exit_status == 1:
        return
    _record_cwd(state, "OLDPWD")
    path = state.env.get("HOME")
    try:
        if path is None:
            raise FileNotFoundError(path)
        os.chdir(path)
    except OSError:
        shown = path if path is not None else "(null)"
        print(f"minishell: cd: {shown}: No such file or directory")
    _record_cwd(state, "PWD")


def _change_directory(state: ShellState, path: str) -> None:
    previous = _cwd()
    try:
        os.chdir(path)
    except OSError:
        print(f"minishell: cd: {path}: No such file or directory")
        state.exit_status = 1
        return
    state.env.update("OLDPWD", previous)
    state.env.update("PWD", _cwd())


def _go_back(state: ShellState) -> None:
    oldpwd = state.env.get("OLDPWD")
    if oldpwd is None:
        print("minishell: cd: OLDPWD not set")
        state.exit_status = 1
        return
    _change_directory(state, oldpwd)
    current = _cwd()
    if current is not None:
        print(current)


def cd(state: ShellState, argv: Sequence[str]) -> None:
    """Change the working directory and keep ``PWD`` and ``OLDPWD`` current."""
    if len(argv) > 2:
        print("minishell: cd: too many arguments", file=sys.stderr)
        state.exit_status = 1
        return
    target = argv[1] if len(argv) > 1 else None
    if target is None or target in ("--", "~"):
        _go_home(state)
    elif target == "-":
        _go_back(state)
    else:
        _change_directory(state, target)


def _is_number(text: str) -> bool:
    digits = text[1:] if text[:1] in ("-", "+") else text
    return all("0" <= char <= "9" for char in digits)


def _atoll(text: str) -> int:
    stripped = text.lstrip(_SPACES)
    sign = 1
    if stripped[:1] in ("-", "+"):
        if stripped[0] == "-":
            sign = -1
        stripped = stripped[1:]
    result = 0
    for char in stripped:
        if not "0" <= char <= "9":
            break
        digit = ord(char) - ord("0")
        if result > _LLONG_MAX // 10 or (
            result == _LLONG_MAX // 10 and digit > _LLONG_MAX % 10
        ):
            return _LLONG_MIN
        result = result * 10 + digit
    return result * sign


def shell_exit(argv: Sequence[str]) -> None:
    """Announce ``exit`` and raise :class:`ExitShell` with the chosen status."""
    sys.stderr.write("exit\n")
    status = 0
    if len(argv) > 1:
        arg = argv[1]
        number = _atoll(arg)
        if not _is_number(arg) or number in (_LLONG_MAX, _LLONG_MIN):
            sys.stderr.write(
                f"minishell: exit : {arg}: numeric argument required\n"
            )
            raise ExitShell(2)
        status = number % 256
        if len(argv) > 2:
            sys.stderr.write("minishell: exit: too many arguments\n")
            raise ExitShell(1)
    raise ExitShell(status)