"""Shared test fixtures for the easyssh test suite."""

import asyncio
import logging

import pytest

from easyssh.target import Target


@pytest.fixture(autouse=True)
def reset_easyssh_logging():
    """Undo configure_logging() so caplog sees easyssh records again."""
    yield
    root = logging.getLogger("easyssh")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
    output = logging.getLogger("easyssh.output")
    for handler in list(output.handlers):
        output.removeHandler(handler)
    output.setLevel(logging.NOTSET)
    output.propagate = True


@pytest.fixture
def three_targets():
    """Three targets, the middle one without a user."""
    return [
        Target("web1", "deploy"),
        Target("web2"),
        Target("web3", "deploy"),
    ]


class FakeProcess:
    """Fake asyncio subprocess with real StreamReaders for stdout/stderr.

    Attributes:
        argv: The command line it was "spawned" with.
        returncode: Exit code reported by wait().
    """

    def __init__(self, argv, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0):
        self.argv = argv
        self.returncode = returncode
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.stdout.feed_data(stdout)
        self.stdout.feed_eof()
        self.stderr.feed_data(stderr)
        self.stderr.feed_eof()

    async def wait(self):
        """Return the stored exit code."""
        return self.returncode


@pytest.fixture
def fake_subprocess(monkeypatch):
    """Replace asyncio.create_subprocess_exec with a scripted fake.

    ``responses`` maps a target string (argv[1]) to (stdout, stderr,
    returncode) or to an exception to raise at spawn time. Every spawn is
    recorded in ``calls``.
    """

    class FakeSubprocess:
        def __init__(self):
            self.calls: list[tuple] = []
            self.responses: dict = {}

        async def __call__(self, *argv, **kwargs):
            self.calls.append(argv)
            response = self.responses.get(argv[1], (b"", b"", 0))
            if isinstance(response, Exception):
                raise response
            stdout, stderr, returncode = response
            return FakeProcess(argv, stdout, stderr, returncode)

    fake = FakeSubprocess()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    yield fake


@pytest.fixture
def mock_execve(monkeypatch):
    """Mock os.execve and shutil.which to capture process replacement calls.

    Records (path, argv, env) instead of actually replacing the process.
    Every binary resolves to /usr/bin/<name>.
    """
    import os
    import shutil

    class MockExecve:
        def __init__(self):
            self.calls = []

        def __call__(self, path, argv, env):
            self.calls.append((path, argv, env))

    mock = MockExecve()
    monkeypatch.setattr(shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(os, "execve", mock)
    yield mock
