"""Tests for sequential and concurrent dispatch (dispatch.py).

Subprocesses are faked via the ``fake_subprocess`` fixture, which patches
asyncio.create_subprocess_exec. Real processes are exercised in
tests/integration/test_local_dispatch.py.
"""

import asyncio
import logging

import pytest

from easyssh.dispatch import CommandResult, build_argv, run_parallel, run_sequential
from easyssh.target import Target


def test_build_argv():
    """The target comes first, then the command tokens verbatim."""
    argv = build_argv("/usr/bin/ssh", Target("web1", "deploy"), ["ls", "-la", "a b"])

    assert argv == ["/usr/bin/ssh", "deploy@web1", "ls", "-la", "a b"]


def test_command_result_ok():
    """ok is true only for a started process that exited 0."""
    target = Target("web1")

    assert CommandResult(target, [], 0).ok
    assert not CommandResult(target, [], 1).ok
    assert not CommandResult(target, [], None, error="No such file").ok


@pytest.mark.asyncio
async def test_parallel_prefixes_output(fake_subprocess, three_targets, caplog):
    """Every output line is logged with its target and stream."""
    fake_subprocess.responses["deploy@web1"] = (b"one\ntwo\n", b"warn\n", 0)
    fake_subprocess.responses["web2"] = (b"three\r\n", b"", 0)
    caplog.set_level(logging.INFO, logger="easyssh")

    await run_parallel("/usr/bin/ssh", three_targets, ["uptime"])

    lines = [r.getMessage() for r in caplog.records if r.name == "easyssh.output"]
    assert "[deploy@web1] (STDOUT) one" in lines
    assert "[deploy@web1] (STDOUT) two" in lines
    assert "[deploy@web1] (STDERR) warn" in lines
    assert "[web2] (STDOUT) three" in lines


@pytest.mark.asyncio
async def test_parallel_spawns_in_target_order(fake_subprocess, three_targets):
    """All processes are spawned, in the order of the target list."""
    await run_parallel("/usr/bin/ssh", three_targets, ["uptime"])

    assert [call[1] for call in fake_subprocess.calls] == [
        "deploy@web1", "web2", "deploy@web3",
    ]


@pytest.mark.asyncio
async def test_parallel_failure_is_isolated(fake_subprocess, three_targets, caplog):
    """A non-zero exit on the middle target is recorded against it alone."""
    fake_subprocess.responses["deploy@web1"] = (b"first\n", b"", 0)
    fake_subprocess.responses["web2"] = (b"", b"boom\n", 255)
    fake_subprocess.responses["deploy@web3"] = (b"third\n", b"", 0)
    caplog.set_level(logging.INFO, logger="easyssh")

    results = await run_parallel("/usr/bin/ssh", three_targets, ["uptime"])

    assert [r.ok for r in results] == [True, False, True]
    assert results[1].returncode == 255

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "web2" in errors[0].getMessage()
    assert "255" in errors[0].getMessage()

    lines = [r.getMessage() for r in caplog.records if r.name == "easyssh.output"]
    assert "[deploy@web1] (STDOUT) first" in lines
    assert "[deploy@web3] (STDOUT) third" in lines


@pytest.mark.asyncio
async def test_parallel_spawn_error_does_not_stop_siblings(fake_subprocess, three_targets):
    """A target that cannot be spawned is recorded; the others still run."""
    fake_subprocess.responses["web2"] = OSError("Resource temporarily unavailable")

    results = await run_parallel("/usr/bin/ssh", three_targets, ["uptime"])

    assert len(fake_subprocess.calls) == 3
    assert results[0].ok and results[2].ok
    assert results[1].returncode is None
    assert "Resource temporarily unavailable" in results[1].error


@pytest.mark.asyncio
async def test_parallel_runs_concurrently(monkeypatch, three_targets):
    """Every process is running before any of them is waited on."""
    running = 0
    peak = 0

    class SlowProcess:
        def __init__(self):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            self.stdout = asyncio.StreamReader()
            self.stderr = asyncio.StreamReader()
            self.stdout.feed_eof()
            self.stderr.feed_eof()

        async def wait(self):
            nonlocal running
            await asyncio.sleep(0.05)
            running -= 1
            return 0

    async def fake_exec(*argv, **kwargs):
        return SlowProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    results = await run_parallel("/usr/bin/ssh", three_targets, ["sleep", "1"])

    assert peak == 3
    assert running == 0
    assert all(r.ok for r in results)


@pytest.mark.asyncio
async def test_sequential_waits_between_targets(monkeypatch, three_targets):
    """Sequential dispatch never has more than one process running."""
    running = 0
    peak = 0
    order: list[str] = []

    class SlowProcess:
        def __init__(self, target):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            order.append(target)
            self.stdout = asyncio.StreamReader()
            self.stderr = asyncio.StreamReader()
            self.stdout.feed_eof()
            self.stderr.feed_eof()

        async def wait(self):
            nonlocal running
            await asyncio.sleep(0.01)
            running -= 1
            return 0

    async def fake_exec(*argv, **kwargs):
        return SlowProcess(argv[1])

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    await run_sequential("/usr/bin/ssh", three_targets, ["uptime"])

    assert peak == 1
    assert order == ["deploy@web1", "web2", "deploy@web3"]


@pytest.mark.asyncio
async def test_sequential_continues_after_failure(fake_subprocess, three_targets):
    """A failing target does not stop the ones after it."""
    fake_subprocess.responses["deploy@web1"] = (b"", b"", 1)

    results = await run_sequential("/usr/bin/ssh", three_targets, ["false"])

    assert len(fake_subprocess.calls) == 3
    assert [r.ok for r in results] == [False, True, True]


@pytest.mark.asyncio
async def test_custom_sink(fake_subprocess, caplog):
    """Output can be routed to a caller-supplied logger."""
    fake_subprocess.responses["web1"] = (b"hello\n", b"", 0)
    sink = logging.getLogger("easyssh.tests.sink")
    caplog.set_level(logging.INFO, logger="easyssh")

    await run_sequential("/usr/bin/ssh", [Target("web1")], ["echo", "hello"], sink=sink)

    assert [r.getMessage() for r in caplog.records if r.name == sink.name] == [
        "[web1] (STDOUT) hello",
    ]


@pytest.mark.asyncio
async def test_parallel_line_longer_than_stream_limit(fake_subprocess, caplog):
    """A line past the 64 KiB reader limit is logged whole; siblings still finish."""
    fake_subprocess.responses["big"] = (b"x" * 100_000 + b"\nafter\n", b"", 0)
    fake_subprocess.responses["web2"] = (b"web2 ok\n", b"", 0)
    caplog.set_level(logging.INFO, logger="easyssh")

    results = await run_parallel("/usr/bin/ssh", [Target("big"), Target("web2")], ["x"])

    assert [r.ok for r in results] == [True, True]
    lines = [r.getMessage() for r in caplog.records if r.name == "easyssh.output"]
    assert lines.count("[big] (STDOUT) " + "x" * 100_000) == 1
    assert "[big] (STDOUT) after" in lines
    assert "[web2] (STDOUT) web2 ok" in lines


@pytest.mark.asyncio
async def test_sequential_long_unterminated_line(fake_subprocess, caplog):
    """Oversized output without a trailing newline is still logged in full."""
    fake_subprocess.responses["web1"] = (b"y" * 70_000, b"", 0)
    caplog.set_level(logging.INFO, logger="easyssh")

    results = await run_sequential("/usr/bin/ssh", [Target("web1"), Target("web2")], ["x"])

    assert [r.ok for r in results] == [True, True]
    lines = [r.getMessage() for r in caplog.records if r.name == "easyssh.output"]
    assert lines == ["[web1] (STDOUT) " + "y" * 70_000]


@pytest.mark.asyncio
async def test_output_records_carry_stream_name(fake_subprocess, caplog):
    """Records say which stream they came from, so handlers can route them."""
    fake_subprocess.responses["web1"] = (b"out\n", b"err\n", 0)
    caplog.set_level(logging.INFO, logger="easyssh")

    await run_parallel("/usr/bin/ssh", [Target("web1")], ["x"])

    streams = {r.getMessage(): r.stream for r in caplog.records if r.name == "easyssh.output"}
    assert streams == {"[web1] (STDOUT) out": "stdout", "[web1] (STDERR) err": "stderr"}
