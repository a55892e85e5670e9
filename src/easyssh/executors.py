"""Executors: what to do with the final target list.

Leaves do the work (log in, run a command, launch a multiplexer). The
``if-one-target`` and ``if-args`` combinators pick one of two child
executors when ``exec`` is called, so a single definition can encode a
whole policy::

    (if-args (ssh-exec-parallel) (if-one-target (ssh-login) (tmux-cssh)))
"""

import asyncio
import logging
from collections.abc import Sequence

from easyssh.dispatch import CommandResult, run_parallel, run_sequential
from easyssh.errors import ExecArgumentError
from easyssh.plugins import Argument, Plugin, Registry, require_arguments, require_child
from easyssh.process import replace_process, which_or_raise
from easyssh.target import Target, target_strings


logger = logging.getLogger(__name__)

SSH_BINARY = "ssh"


class Executor(Plugin):
    """Base class for executors."""

    name = "executor"

    def exec(self, targets: Sequence[Target], command: Sequence[str]) -> list[CommandResult]:
        """Run ``command`` (possibly empty) against ``targets``.

        Returns:
            list[CommandResult]: Per-target results for command-running
                executors; process-replacing executors never return.
        """
        raise NotImplementedError


registry: Registry[Executor] = Registry("executor")


def make(definition: str) -> Executor:
    """Build an executor tree from its definition string."""
    return registry.make(definition)


def supported_names() -> list[str]:
    return registry.names()


def require_exactly_one_target(e: Executor, targets: Sequence[Target]) -> None:
    if len(targets) != 1:
        raise ExecArgumentError(str(e), "expects exactly one target", target_strings(targets))


def require_at_least_one_target(e: Executor, targets: Sequence[Target]) -> None:
    if len(targets) < 1:
        raise ExecArgumentError(str(e), "expects at least one target", target_strings(targets))


def require_no_command(e: Executor, command: Sequence[str]) -> None:
    if command:
        raise ExecArgumentError(str(e), "doesn't accept a command", list(command))


def require_command(e: Executor, command: Sequence[str]) -> None:
    if not command:
        raise ExecArgumentError(str(e), "requires a command", list(command))


@registry.register("ssh-login")
class SshLogin(Executor):
    """Replace this process with an interactive ssh session to one target."""

    name = "ssh-login"

    def exec(self, targets, command):
        require_exactly_one_target(self, targets)
        require_no_command(self, command)
        replace_process(SSH_BINARY, [str(targets[0])])


@registry.register("ssh-exec")
class SshExec(Executor):
    """Run the command on each target, one after the other."""

    name = "ssh-exec"

    def exec(self, targets, command):
        require_at_least_one_target(self, targets)
        require_command(self, command)
        binary = which_or_raise(SSH_BINARY)
        return asyncio.run(run_sequential(binary, targets, command))


@registry.register("ssh-exec-parallel")
class SshExecParallel(Executor):
    """Run the command on all targets concurrently."""

    name = "ssh-exec-parallel"

    def exec(self, targets, command):
        require_at_least_one_target(self, targets)
        require_command(self, command)
        binary = which_or_raise(SSH_BINARY)
        return asyncio.run(run_parallel(binary, targets, command))


class _Multiplexer(Executor):
    """Replace this process with a tool that opens one pane per target."""

    binary = ""

    def exec(self, targets, command):
        require_at_least_one_target(self, targets)
        require_no_command(self, command)
        replace_process(self.binary, target_strings(targets))


@registry.register("csshx")
class Csshx(_Multiplexer):
    name = "csshx"
    binary = "csshx"


@registry.register("tmux-cssh")
class TmuxCssh(_Multiplexer):
    name = "tmux-cssh"
    binary = "tmux-cssh"


@registry.register("if-one-target")
class IfOneTarget(Executor):
    """Use the first child for exactly one target, the second otherwise.

    Attributes:
        one: Executor used when there is a single target.
        more: Executor used for zero or several targets.
    """

    name = "if-one-target"

    def __init__(self) -> None:
        self.one: Executor | None = None
        self.more: Executor | None = None

    def set_args(self, args: Sequence[Argument]) -> None:
        require_arguments(self, 2, args)
        self.one = require_child(self, args[0], Executor)
        self.more = require_child(self, args[1], Executor)

    def exec(self, targets, command):
        if len(targets) == 1:
            logger.debug("%s got one target, using %s", self, self.one)
            return self.one.exec(targets, command)
        logger.debug("%s got %d targets, using %s", self, len(targets), self.more)
        return self.more.exec(targets, command)

    def __str__(self) -> str:
        return f"<{self.name} {self.one} {self.more}>"


@registry.register("if-args")
class IfArgs(Executor):
    """Use the first child when a command is given, the second otherwise.

    Attributes:
        with_args: Executor used when the command is non-empty.
        without_args: Executor used when the command is empty.
    """

    name = "if-args"

    def __init__(self) -> None:
        self.with_args: Executor | None = None
        self.without_args: Executor | None = None

    def set_args(self, args: Sequence[Argument]) -> None:
        require_arguments(self, 2, args)
        self.with_args = require_child(self, args[0], Executor)
        self.without_args = require_child(self, args[1], Executor)

    def exec(self, targets, command):
        if not command:
            logger.debug("%s got no command, using %s", self, self.without_args)
            return self.without_args.exec(targets, command)
        logger.debug("%s got a command, using %s", self, self.with_args)
        return self.with_args.exec(targets, command)

    def __str__(self) -> str:
        return f"<{self.name} {self.with_args} {self.without_args}>"
