"""Open redirections, find programs and run commands and pipelines."""

from __future__ import annotations

import copy
import errno
import io
import os
import signal
import subprocess
import sys
import threading
from contextlib import redirect_stdout, suppress
from dataclasses import dataclass
from typing import Optional, Sequence

from minishell.builtins import ExitShell, is_builtin, run_builtin
from minishell.env import ShellState
from minishell.lexer import TokenType
from minishell.parser import Command, Redirection

__all__ = ["RedirectionError", "find_path", "open_redirections", "execute"]

DEFAULT_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

_OPEN_FLAGS = {
    TokenType.REDIRECT_IN: os.O_RDONLY,
    TokenType.REDIRECT_OUT: os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    TokenType.APPEND_OUT: os.O_WRONLY | os.O_CREAT | os.O_APPEND,
}


class RedirectionError(Exception):
    """A redirection of ``command`` could not be set up."""

    def __init__(
        self, message: str, filename: str, command: Optional[Command] = None
    ) -> None:
        super().__init__(message)
        self.filename = filename
        self.command = command


def _error(path: str, reason: str) -> None:
    print(f"{path}: {reason}", file=sys.stderr)


def find_path(command: str, environ: Sequence[str]) -> Optional[str]:
    """Locate the program for ``command``.

    A name holding ``/`` is taken as a path: :class:`FileNotFoundError` is
    raised if it does not exist and :class:`PermissionError` if it cannot
    be executed. Other names are looked up in the ``PATH`` entry of
    ``environ`` (``NAME=value`` strings), or in a default search path when
    there is none. Returns ``None`` if nothing is found.
    """
    if "/" in command:
        if not os.access(command, os.F_OK):
            raise FileNotFoundError(
                errno.ENOENT, "No such file or directory", command
            )
        if not os.access(command, os.X_OK):
            raise PermissionError(errno.EACCES, "Permission denied", command)
        return command
    search = next(
        (entry[5:] for entry in environ if entry.startswith("PATH=")),
        DEFAULT_PATH,
    )
    for directory in filter(None, search.split(":")):
        candidate = f"{directory}/{command}"
        if os.access(candidate, os.F_OK | os.X_OK):
            return candidate
    return None


def _open(redirection: Redirection) -> int:
    name = redirection.filename
    flags = _OPEN_FLAGS.get(redirection.type)
    try:
        if flags is None:
            raise OSError(errno.EINVAL, os.strerror(errno.EINVAL), name)
        return os.open(name, flags, 0o644)
    except OSError as exc:
        raise RedirectionError(f"minishell: {name} : {exc.strerror}", name) from exc


def _replace_fd(old: int, new: int) -> int:
    if old > 2:
        with suppress(OSError):
            os.close(old)
    return new


def _open_command(command: Command) -> None:
    for redirection in command.redirections:
        name = redirection.filename
        if redirection.type == TokenType.REDIRECT_IN and not os.access(name, os.F_OK):
            raise RedirectionError(
                f"minishell: {name}: No such file or directory", name, command
            )
        if os.access(name, os.F_OK):
            # The permission check is made on the command's first redirection.
            checked = command.redirections[0].filename
            mode = os.R_OK if redirection.type == TokenType.REDIRECT_IN else os.W_OK
            if not os.access(checked, mode):
                raise RedirectionError(
                    f"minishell: {checked}: Permission denied", checked, command
                )
        try:
            fd = _open(redirection)
        except RedirectionError as error:
            error.command = command
            raise
        if redirection.type == TokenType.REDIRECT_IN:
            command.fdin = _replace_fd(command.fdin, fd)
        else:
            command.fdout = _replace_fd(command.fdout, fd)


def open_redirections(commands: Sequence[Command]) -> list[RedirectionError]:
    """Open the files of every command's redirections.

    Each command starts from standard input and output; its ``fdin`` and
    ``fdout`` are set to the files opened. A command stops at its first
    failing redirection. One error per failing command is returned, in order.
    """
    errors = []
    for command in commands:
        command.fdin, command.fdout = 0, 1
        try:
            _open_command(command)
        except RedirectionError as error:
            errors.append(error)
    return errors


def _close_fds(commands: Sequence[Command]) -> None:
    for command in commands:
        command.fdin = _replace_fd(command.fdin, 0)
        command.fdout = _replace_fd(command.fdout, 1)


def _exit_status(code: int) -> int:
    if code >= 0:
        return code
    sig = -code
    if sig == signal.SIGQUIT:
        sys.stderr.write("Quit (core dumped)\n")
    elif sig == signal.SIGINT:
        sys.stderr.write("\n")
    return 128 + sig


def _flush() -> None:
    sys.stdout.flush()
    sys.stderr.flush()


def _emit(fd: int, text: str) -> None:
    if not text or fd < 0:
        return
    if fd == 1:
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    data = text.encode(errors="surrogateescape")
    view = memoryview(data)
    while view:
        view = view[os.write(fd, view):]


def _write_and_close(fd: int, data: bytes) -> None:
    try:
        view = memoryview(data)
        while view:
            view = view[os.write(fd, view):]
    except OSError:
        pass
    finally:
        with suppress(OSError):
            os.close(fd)


@dataclass
class _Job:
    status: int = 0
    process: Optional[subprocess.Popen] = None
    writer: Optional[threading.Thread] = None

    def wait(self) -> int:
        if self.process is not None:
            self.status = _exit_status(self.process.wait())
        if self.writer is not None:
            self.writer.join()
        return self.status


def _launch(
    state: ShellState, argv: Sequence[str], stdin: Optional[int], stdout: Optional[int]
) -> _Job:
    environ = state.env.to_strings()
    name = argv[0]
    try:
        path = find_path(name, environ)
    except FileNotFoundError:
        _error(name, "No such file or directory")
        return _Job(127)
    except PermissionError:
        _error(name, "Permission denied")
        return _Job(126)
    if path is None:
        print(f"minishell: command not found: {name}", file=sys.stderr)
        return _Job(127)
    if os.path.isdir(path):
        print(f"minishell: {path}: Is a directory", file=sys.stderr)
        return _Job(126)
    _flush()
    try:
        process = subprocess.Popen(
            list(argv),
            executable=path,
            stdin=stdin,
            stdout=stdout,
            env=dict(entry.split("=", 1) for entry in environ),
        )
    except OSError as exc:
        print(f"minishell: {exc.strerror}", file=sys.stderr)
        return _Job(127)
    return _Job(process=process)


def _run_single(state: ShellState, command: Command) -> None:
    argv = command.argv
    if not argv:
        state.exit_status = 0
        return
    if is_builtin(argv):
        out = io.StringIO()
        try:
            run_builtin(state, argv, out)
        finally:
            _emit(command.fdout, out.getvalue())
        return
    stdin = command.fdin if command.fdin > 2 else None
    stdout = command.fdout if command.fdout != 1 else None
    state.exit_status = _launch(state, argv, stdin, stdout).wait()


def _cwd() -> Optional[str]:
    try:
        return os.getcwd()
    except OSError:
        return None


def _detached_builtin(
    state: ShellState, argv: Sequence[str], stdout: Optional[int]
) -> _Job:
    """Run a built-in as one stage of a pipeline, leaving ``state`` untouched."""
    scratch = copy.deepcopy(state)
    buffer = io.StringIO()
    cwd = _cwd()
    try:
        with redirect_stdout(buffer):
            status = run_builtin(scratch, argv, buffer)
    except ExitShell as exc:
        status = exc.status
    finally:
        if cwd is not None:
            with suppress(OSError):
                os.chdir(cwd)
    text = buffer.getvalue()
    if stdout is None:
        _emit(1, text)
        return _Job(status)
    data = text.encode(errors="surrogateescape")
    writer = threading.Thread(
        target=_write_and_close, args=(os.dup(stdout), data), daemon=True
    )
    writer.start()
    return _Job(status, writer=writer)


def _run_pipeline(state: ShellState, commands: Sequence[Command]) -> None:
    jobs: list[_Job] = []
    previous: Optional[int] = None
    last = len(commands) - 1
    try:
        for index, command in enumerate(commands):
            read_end = write_end = None
            if index < last:
                read_end, write_end = os.pipe()
            stdin = command.fdin if command.fdin > 2 else previous
            if command.fdout > 2:
                stdout = command.fdout
            else:
                stdout = write_end
            try:
                if not command.argv:
                    jobs.append(_Job(0))
                elif is_builtin(command.argv):
                    jobs.append(_detached_builtin(state, command.argv, stdout))
                else:
                    jobs.append(_launch(state, command.argv, stdin, stdout))
            finally:
                if write_end is not None:
                    os.close(write_end)
                if previous is not None:
                    os.close(previous)
                previous = read_end
    finally:
        if previous is not None:
            os.close(previous)
        statuses = [job.wait() for job in jobs]
    if statuses:
        state.exit_status = statuses[-1]


def execute(state: ShellState, commands: Sequence[Command]) -> int:
    """Run ``commands`` as one pipeline and return the new exit status.

    Redirection errors are reported on standard error and set the status
    to 1; when the last command's redirections fail nothing is run.
    ``exit`` run on its own raises :class:`ExitShell`.
    """
    if not commands:
        return state.exit_status
    errors = open_redirections(commands)
    try:
        for error in errors:
            print(error, file=sys.stderr)
        if errors:
            state.exit_status = 1
            if errors[-1].command is commands[-1]:
                return state.exit_status
        if len(commands) == 1:
            _run_single(state, commands[0])
        else:
            _run_pipeline(state, commands)
    finally:
        _close_fds(commands)
    return state.exit_status