"""Exception hierarchy for easyssh.

Every error raised here is fatal: it propagates to the CLI, which prints
the message and exits non-zero. Per-target problems that must not abort
the run (lookup misses, failed remote commands) are logged instead.
"""

from collections.abc import Iterable
from pathlib import Path


class EasySSHError(Exception):
    """Base class for all fatal easyssh errors."""

    pass


class ParseError(EasySSHError):
    """Raised when a definition string is not a well-formed expression."""

    def __init__(self, message: str, text: str) -> None:
        super().__init__(f"{message} in definition {text!r}")
        self.text = text


class UnknownPluginError(EasySSHError):
    """Raised when a definition names a plugin missing from its registry."""

    def __init__(self, family: str, name: str, known: Iterable[str]) -> None:
        self.family = family
        self.name = name
        self.known = sorted(known)
        super().__init__(
            f"{family.capitalize()} {name!r} is not known. "
            f"Supported {family}s: {', '.join(self.known)}"
        )


class ArgumentError(EasySSHError):
    """Base class for invalid plugin arguments."""

    pass


class ArgumentCountError(ArgumentError):
    """Raised when a plugin receives the wrong number of arguments."""

    def __init__(self, plugin: str, expected: int | str, got: int) -> None:
        self.plugin = plugin
        self.expected = expected
        self.got = got
        super().__init__(f"{plugin} expects {expected} argument(s), got {got}")


class ArgumentTypeError(ArgumentError):
    """Raised when a plugin argument has the wrong shape."""

    def __init__(self, plugin: str, expected: str, value: object) -> None:
        self.plugin = plugin
        self.expected = expected
        self.value = value
        super().__init__(f"{plugin} expects {expected}, got {value}")


class ExecArgumentError(ArgumentError):
    """Raised when an executor is invoked with targets or a command it cannot handle."""

    def __init__(self, plugin: str, constraint: str, value: object) -> None:
        self.plugin = plugin
        self.constraint = constraint
        self.value = value
        super().__init__(f"{plugin} {constraint}, got: {value}")


class BinaryNotFoundError(EasySSHError):
    """Raised when a required external program is not on $PATH."""

    def __init__(self, binary: str) -> None:
        self.binary = binary
        super().__init__(f"{binary} is required but not found on $PATH.")


class NoTargetsError(EasySSHError):
    """Raised when discovery yields no hosts."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"No targets found for {query!r}")


class ConfigError(EasySSHError):
    """Raised when the config file cannot be read or holds invalid values."""

    def __init__(self, path: Path, reason: Exception) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config file {path}: {reason}")
