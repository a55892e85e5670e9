"""Run one command over many targets and stream their output to the log.

Every output line becomes one record on the ``easyssh.output`` logger,
prefixed with the owning target and stream, e.g.
``[deploy@web1] (STDOUT) ok``. Logging handlers hold a lock while emitting,
so lines from concurrent targets interleave but never mix mid-line.
"""

import asyncio
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass

from easyssh.target import Target


logger = logging.getLogger(__name__)
output_logger = logging.getLogger("easyssh.output")


@dataclass
class CommandResult:
    """Outcome of running the command over one target.

    Attributes:
        target: The target the command ran against.
        argv: Full command line that was spawned.
        returncode: Exit code, or None if the process never started.
        error: Spawn error message, if the process never started.
    """

    target: Target
    argv: list[str]
    returncode: int | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True if the process started and exited with status 0."""
        return self.error is None and self.returncode == 0


def build_argv(binary: str, target: Target, command: Sequence[str]) -> list[str]:
    """Build ``binary user@host command...`` for one target.

    Args:
        binary: Resolved path of the remote-command tool (ssh).
        target: Target to run against.
        command: Command tokens, passed through verbatim.

    Returns:
        list[str]: The argv to spawn.
    """
    return [binary, str(target), *command]


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """Read one line, however long, or whatever is left before EOF.

    ``readline`` gives up on lines longer than the stream limit; here the
    oversized chunk is consumed and joined with the rest of its line.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            break
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
            break
        except asyncio.LimitOverrunError as exc:
            chunks.append(await stream.read(exc.consumed))
    return b"".join(chunks)


async def _pump(
    stream: asyncio.StreamReader, prefix: str, stream_name: str, sink: logging.Logger
) -> None:
    """Forward every line of ``stream`` to ``sink`` until EOF."""
    while True:
        line = await _read_line(stream)
        if not line:
            break
        sink.info(
            "%s %s", prefix, line.decode(errors="replace").rstrip("\r\n"),
            extra={"stream": stream_name},
        )


async def _spawn(argv: list[str]) -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(os.environ),
    )


async def _collect(
    target: Target,
    argv: list[str],
    proc: asyncio.subprocess.Process,
    sink: logging.Logger,
) -> CommandResult:
    """Drain both streams of a running process, then wait for it to exit."""
    try:
        await asyncio.gather(
            _pump(proc.stdout, f"[{target}] (STDOUT)", "stdout", sink),
            _pump(proc.stderr, f"[{target}] (STDERR)", "stderr", sink),
        )
    finally:
        returncode = await proc.wait()
    if returncode != 0:
        logger.error("%s: %s exited with status %d", target, argv, returncode)
    return CommandResult(target=target, argv=argv, returncode=returncode)


def _spawn_failed(target: Target, argv: list[str], exc: OSError) -> CommandResult:
    logger.error("%s: %s could not be started: %s", target, argv, exc)
    return CommandResult(target=target, argv=argv, returncode=None, error=str(exc))


async def run_sequential(
    binary: str,
    targets: Sequence[Target],
    command: Sequence[str],
    sink: logging.Logger | None = None,
) -> list[CommandResult]:
    """Run the command on each target in turn.

    Each process is started only after the previous one has exited. A
    failure on one target does not stop the remaining targets.

    Args:
        binary: Resolved path of the remote-command tool.
        targets: Targets, in execution order.
        command: Command tokens appended after the target.
        sink: Logger receiving output lines. Defaults to ``easyssh.output``.

    Returns:
        list[CommandResult]: One result per target, in target order.
    """
    sink = sink or output_logger
    results: list[CommandResult] = []

    for target in targets:
        argv = build_argv(binary, target, command)
        logger.info("Executing %s", argv)
        try:
            proc = await _spawn(argv)
        except OSError as exc:
            results.append(_spawn_failed(target, argv, exc))
            continue
        results.append(await _collect(target, argv, proc, sink))

    return results


async def run_parallel(
    binary: str,
    targets: Sequence[Target],
    command: Sequence[str],
    sink: logging.Logger | None = None,
) -> list[CommandResult]:
    """Run the command on every target at once.

    Processes are spawned in target order, then all of them are drained and
    joined. There is no fail-fast: a failing or unspawnable target is logged
    and recorded while its siblings run to completion. There is also no
    timeout, so one hung remote command holds up the whole call.

    Args:
        binary: Resolved path of the remote-command tool.
        targets: Targets to run against.
        command: Command tokens appended after each target.
        sink: Logger receiving output lines. Defaults to ``easyssh.output``.

    Returns:
        list[CommandResult]: One result per target, in target order.
    """
    sink = sink or output_logger
    logger.info("Parallelly executing %s on %s", list(command), [str(t) for t in targets])

    pending: list[asyncio.Future[CommandResult] | CommandResult] = []
    for target in targets:
        argv = build_argv(binary, target, command)
        logger.debug("Executing %s", argv)
        try:
            proc = await _spawn(argv)
        except OSError as exc:
            pending.append(_spawn_failed(target, argv, exc))
            continue
        pending.append(asyncio.ensure_future(_collect(target, argv, proc, sink)))

    results: list[CommandResult] = []
    for item in pending:
        results.append(item if isinstance(item, CommandResult) else await item)
    return results
