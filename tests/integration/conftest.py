"""Integration test fixtures: a local stand-in for ssh."""

import stat
from pathlib import Path

import pytest


FAKE_SSH = """#!/bin/sh
# Stand-in for ssh: $1 is the target, the rest is the command.
target="$1"
shift
case "$target" in
    *bad*)
        echo "connection to $target failed" >&2
        sleep "${FAKE_SSH_DELAY:-0}"
        exit 255
        ;;
esac
sleep "${FAKE_SSH_DELAY:-0}"
echo "$target: $*"
echo "$target done" >&2
"""


@pytest.fixture
def fake_ssh(tmp_path: Path, monkeypatch) -> Path:
    """Write an executable fake ssh script and return its path.

    Each invocation sleeps $FAKE_SSH_DELAY seconds, echoes the target and
    command on stdout and a marker on stderr. Targets containing "bad" exit
    255 after writing to stderr.
    """
    script = tmp_path / "ssh"
    script.write_text(FAKE_SSH)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
