"""Discoverers: turn the target-definition argument into host names."""

import fnmatch
import glob as globmod
import logging
import re
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from easyssh.errors import ArgumentCountError
from easyssh.plugins import Argument, Plugin, Registry, require_child


logger = logging.getLogger(__name__)

KEYWORD_SEPARATOR = re.compile(r"\s*=\s*|\s+")


class Discoverer(Plugin):
    """Base class for discoverers."""

    name = "discoverer"

    def discover(self, query: str) -> list[str]:
        raise NotImplementedError


registry: Registry[Discoverer] = Registry("discoverer")


def make(definition: str) -> Discoverer:
    """Build a discoverer tree from its definition string."""
    return registry.make(definition)


def supported_names() -> list[str]:
    return registry.names()


@registry.register("comma-separated")
class CommaSeparated(Discoverer):
    """``"web1, web2,db1"`` -> ``["web1", "web2", "db1"]``."""

    name = "comma-separated"

    def discover(self, query):
        return [host.strip() for host in query.split(",") if host.strip()]


def parse_ssh_config_hosts(config_path: Path | None = None) -> list[str]:
    """Parse ~/.ssh/config for Host entries, following Include directives.

    Extracts Host entries (splitting multi-host lines) and filters out
    wildcard patterns containing *, ?, or !.

    Args:
        config_path: Path to SSH config file. Defaults to ~/.ssh/config.

    Returns:
        list[str]: Sorted, deduplicated list of concrete hostnames.
    """
    config_path = config_path or Path.home() / ".ssh" / "config"
    hosts: set[str] = set()
    _parse_ssh_config_file(config_path, hosts, set())
    return sorted(hosts)


def _parse_ssh_config_file(path: Path, hosts: set[str], seen: set[Path]) -> None:
    """Recursively collect Host entries from one file into ``hosts``."""
    path = path.resolve()
    if path in seen or not path.is_file():
        return
    seen.add(path)

    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        # Keywords are case-insensitive and end at whitespace or "=".
        keyword, _, rest = KEYWORD_SEPARATOR.sub(" ", stripped, count=1).partition(" ")
        keyword = keyword.lower()

        if keyword == "host":
            for entry in rest.split():
                if any(c in entry for c in ("*", "?", "!")):
                    continue
                hosts.add(entry)

        elif keyword == "include":
            # Relative includes are resolved against ~/.ssh, as ssh does.
            for pattern in rest.split():
                expanded = Path(pattern).expanduser()
                if not expanded.is_absolute():
                    expanded = Path.home() / ".ssh" / expanded
                for match in globmod.glob(str(expanded)):
                    _parse_ssh_config_file(Path(match), hosts, seen)


@registry.register("ssh-config")
class SshConfig(Discoverer):
    """Hosts from ~/.ssh/config whose alias matches the query as a glob."""

    name = "ssh-config"

    config_path: Path | None = None

    def discover(self, query):
        return [
            host for host in parse_ssh_config_hosts(self.config_path)
            if fnmatch.fnmatchcase(host, query)
        ]


@registry.register("knife")
class Knife(Discoverer):
    """Chef nodes matching a ``knife search node`` query."""

    name = "knife"

    def discover(self, query):
        if shutil.which("knife") is None:
            logger.warning("knife not found on $PATH, %s finds nothing", self)
            return []

        cmd = ["knife", "search", "node", query, "-i"]
        logger.info("Executing %s", cmd)
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            logger.warning("%s failed with status %d: %s", cmd, result.returncode, result.stderr.strip())
            return []
        return parse_knife_output(result.stdout)


def parse_knife_output(raw: str) -> list[str]:
    """Parse ``knife search node -i`` output into node names.

    Skips blank lines and the "N items found" summary line.
    """
    hosts: list[str] = []
    for line in raw.splitlines():
        stripped = line.strip()
        if not stripped or stripped.endswith("items found") or stripped.endswith("item found"):
            continue
        hosts.append(stripped)
    return hosts


@registry.register("first-matching")
class FirstMatching(Discoverer):
    """Return the hosts of the first child discoverer that finds any."""

    name = "first-matching"

    def __init__(self) -> None:
        self.children: list[Discoverer] = []

    def set_args(self, args: Sequence[Argument]) -> None:
        if not args:
            raise ArgumentCountError(self.name, "at least 1", 0)
        self.children = [require_child(self, arg, Discoverer) for arg in args]

    def discover(self, query):
        for child in self.children:
            hosts = child.discover(query)
            if hosts:
                logger.debug("%s found %s via %s", self, hosts, child)
                return hosts
            logger.debug("%s: %s found nothing", self, child)
        return []

    def __str__(self) -> str:
        return f"<{self.name} {' '.join(str(c) for c in self.children)}>"
