"""The interactive loop: read a line, run it, repeat."""

from __future__ import annotations

import os
import signal
import sys
from typing import Optional, Sequence

from minishell.builtins import ExitShell
from minishell.env import Environment, ShellState
from minishell.executor import execute
from minishell.lexer import UnclosedQuoteError, tokenize
from minishell.parser import Command, ShellSyntaxError, check_syntax, parse

__all__ = ["format_commands", "check_parse", "run_line", "main"]

PROMPT = "\033[32mminishell> \033[0m"


def format_commands(commands: Sequence[Command]) -> str:
    """Describe the parsed commands: arguments, descriptors and redirections."""
    parts: list[str] = []
    for command in commands:
        parts.append("Command: " + "".join(f"{arg} " for arg in command.argv) + "\n")
        parts.append("File descriptors:\n")
        parts.append(f"  fdin: {command.fdin}\n")
        parts.append(f"  fdout: {command.fdout}\n")
        if command.redirections:
            parts.append("Other redirections:\n")
            parts.extend(
                f"  Redirection: Type={int(redirection.type)}, "
                f"Filename={redirection.filename}\n"
                for redirection in command.redirections
            )
        parts.append("\n")
    return "".join(parts)


def check_parse(commands: Sequence[Command]) -> bool:
    """Tell whether the first command redirects to ``#``, reporting it on stderr."""
    if not commands:
        return False
    if any(redirection.filename == "#" for redirection in commands[0].redirections):
        sys.stderr.write("syntax error near unexpected token `newline'\n")
        return True
    return False


def run_line(state: ShellState, line: str) -> int:
    """Lex, parse and execute one command line; return the exit status.

    ``exit`` lets :class:`ExitShell` propagate to the caller.
    """
    try:
        tokens = tokenize(line, state)
    except UnclosedQuoteError as error:
        print(error)
        return state.exit_status
    try:
        check_syntax(tokens)
    except ShellSyntaxError as error:
        if str(error):
            print(error)
        return state.exit_status
    try:
        commands = parse(tokens)
    except ShellSyntaxError as error:
        print(error, file=sys.stderr)
        return state.exit_status

    if check_parse(commands):
        commands[0].redirections.clear()
        if len(commands) > 1:
            commands = commands[1:]

    sys.stdout.write(format_commands(commands))
    sys.stdout.flush()
    if commands:
        execute(state, commands)
    else:
        print("command not found")
    return state.exit_status


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the interactive shell until end of input or ``exit``."""
    try:
        import readline  # noqa: F401  (line editing and history for input())
    except ImportError:
        pass

    state = ShellState(
        env=Environment.from_strings(f"{k}={v}" for k, v in os.environ.items())
    )
    has_sigquit = hasattr(signal, "SIGQUIT")
    previous_int = signal.signal(signal.SIGINT, signal.default_int_handler)
    previous_quit = signal.signal(signal.SIGQUIT, signal.SIG_IGN) if has_sigquit else None
    try:
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                break
            except KeyboardInterrupt:
                sys.stdout.write("\n")
                sys.stdout.flush()
                state.exit_status = 130
                continue
            try:
                run_line(state, line)
            except ExitShell as exc:
                return exc.status
            except KeyboardInterrupt:
                sys.stdout.write("\n")
                sys.stdout.flush()
                state.exit_status = 130
        return state.exit_status
    finally:
        signal.signal(signal.SIGINT, previous_int)
        if has_sigquit:
            signal.signal(signal.SIGQUIT, previous_quit)