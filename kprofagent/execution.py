"""Starting external commands, with a scriptable fake for tests."""

from __future__ import annotations

import errno
import logging
import subprocess
from dataclasses import dataclass, field
from typing import IO, Any

logger = logging.getLogger(__name__)


def _no_command() -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, "no command")


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of a finished command."""

    exit_code: int
    output: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class Command:
    """A prepared command line with optional stdin/stdout redirection."""

    name: str
    args: tuple[str, ...] = ()
    stdin: IO[Any] | None = None
    stdout: IO[Any] | None = None

    @property
    def argv(self) -> list[str]:
        return [self.name, *self.args]

    def _stdin(self) -> Any:
        return self.stdin if self.stdin is not None else subprocess.DEVNULL

    def run(self) -> CommandResult:
        """Run the command and wait for it.

        Raises OSError when the program cannot be started and
        subprocess.CalledProcessError when it exits with a non-zero status.
        """
        if not self.name:
            raise _no_command()
        stdout = self.stdout if self.stdout is not None else subprocess.PIPE
        proc = subprocess.run(
            self.argv,
            stdin=self._stdin(),
            stdout=stdout,
            stderr=subprocess.PIPE,
            check=False,
        )
        output = proc.stdout or b""
        stderr = proc.stderr or b""
        if proc.returncode != 0:
            raise subprocess.CalledProcessError(proc.returncode, self.argv, output, stderr)
        return CommandResult(0, output, stderr)


class Commander:
    """Builds commands, optionally logging each one, and executes them."""

    def __init__(self, log_command: bool = True) -> None:
        self.log_command = log_command

    def command(self, name: str, *args: str) -> Command:
        if self.log_command:
            logger.debug(" ".join([name, *args]).strip())
        return Command(name, tuple(args))

    def execute(self, cmd: Command) -> CommandResult:
        """Run the command, returning its exit code and combined stdout/stderr.

        A non-zero exit is reported in the result; OSError is raised when the
        program cannot be started.
        """
        if not cmd.name:
            raise _no_command()
        if cmd.stdout is not None:
            raise ValueError("stdout already set")
        proc = subprocess.run(
            cmd.argv,
            stdin=cmd._stdin(),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
        return CommandResult(proc.returncode, proc.stdout or b"")


@dataclass
class FakeMethod:
    """Queued return values and call count of one faked method."""

    return_values: list[tuple[Any, ...]] = field(default_factory=list)
    invokes: int = 0
    _cursor: int = 0

    def returns(self, *args: Any) -> "FakeMethod":
        self.return_values.append(args)
        return self

    def invoked_times(self) -> int:
        return self.invokes

    def _next(self) -> tuple[Any, ...] | None:
        self.invokes += 1
        if not self.return_values:
            return None
        if self._cursor >= len(self.return_values):
            raise IndexError("no more return values configured for fake method")
        values = self.return_values[self._cursor]
        self._cursor += 1
        return values


class FakeCommander(Commander):
    """A Commander whose results are configured in advance."""

    def __init__(self) -> None:
        super().__init__(log_command=False)
        self._methods: dict[str, FakeMethod] = {}

    def on(self, method_name: str) -> FakeMethod:
        return self._methods.setdefault(method_name, FakeMethod())

    def command(self, name: str, *args: str) -> Command | None:
        values = self.on("command")._next()
        if values:
            return values[0]
        return None

    def execute(self, cmd: Command | None) -> CommandResult:
        values = self.on("execute")._next()
        if not values:
            return CommandResult(0)
        padded = (*values, None, None, None)
        exit_code, output, error = padded[0], padded[1], padded[2]
        if error is not None:
            raise error
        return CommandResult(exit_code or 0, output or b"")


_default = Commander()
_silent = Commander(log_command=False)


def default_commander() -> Commander:
    return _default


def silent_commander() -> Commander:
    return _silent


def command(name: str, *args: str) -> Command:
    return _default.command(name, *args)


def silent_command(name: str, *args: str) -> Command:
    return _silent.command(name, *args)


def execute(cmd: Command) -> CommandResult:
    return _default.execute(cmd)