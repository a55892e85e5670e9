"""Target model: one remote endpoint."""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class Target:
    """A remote host and the optional user to log in as.

    Attributes:
        host: Hostname or address.
        user: Login user; empty means "let ssh decide".
    """

    host: str
    user: str = ""

    def __str__(self) -> str:
        if self.user:
            return f"{self.user}@{self.host}"
        return self.host


def make_targets(hosts: Iterable[str], user: str = "") -> list[Target]:
    """Wrap discovered host names into Targets sharing one login user."""
    return [Target(host=host, user=user) for host in hosts]


def target_strings(targets: Iterable[Target]) -> list[str]:
    """Render every target as ``user@host`` / ``host``."""
    return [str(target) for target in targets]
