"""Plugin registries and the evaluator that builds plugin trees.

Each family (discoverer, executor, filter) owns one ``Registry`` mapping a
name to a zero-argument factory. ``Registry.make`` parses a definition and
builds the whole tree eagerly: nested lists are resolved into child plugins
of the same family before being handed to their parent via ``bind``.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar, Union

from easyssh.errors import ArgumentCountError, ArgumentTypeError, UnknownPluginError
from easyssh.sexp import Atom, SList, parse


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Literal:
    """A bare-token plugin argument.

    Attributes:
        text: The token text.
    """

    text: str

    def __str__(self) -> str:
        return self.text


class Plugin:
    """Base class for every plugin family.

    Subclasses set ``name`` and override ``set_args`` when they accept
    arguments. The default accepts none.
    """

    name: ClassVar[str] = "plugin"

    _bound: bool = False

    def bind(self, args: Sequence["Argument"]) -> None:
        """Bind construction arguments. Called exactly once by the evaluator.

        Args:
            args: Literal tokens and already-built child plugins.

        Raises:
            RuntimeError: If the plugin was already bound.
        """
        if self._bound:
            raise RuntimeError(f"{self} is already bound")
        self.set_args(args)
        self._bound = True

    def set_args(self, args: Sequence["Argument"]) -> None:
        require_no_arguments(self, args)

    def __str__(self) -> str:
        return f"<{self.name}>"

    __repr__ = __str__


Argument = Union[Literal, Plugin]

P = TypeVar("P", bound=Plugin)


def require_no_arguments(plugin: Plugin, args: Sequence[Argument]) -> None:
    """Raise ArgumentCountError unless ``args`` is empty."""
    require_arguments(plugin, 0, args)


def require_arguments(plugin: Plugin, count: int, args: Sequence[Argument]) -> None:
    """Raise ArgumentCountError unless exactly ``count`` arguments were given."""
    if len(args) != count:
        raise ArgumentCountError(plugin.name, count, len(args))


def require_literal(plugin: Plugin, arg: Argument, what: str = "a bare token") -> str:
    """Return the text of a literal argument.

    Args:
        plugin: The plugin being bound, used in the error message.
        arg: Argument to check.
        what: Human description of the expected value.

    Returns:
        str: The non-empty literal text.

    Raises:
        ArgumentTypeError: If ``arg`` is a nested expression or empty.
    """
    if not isinstance(arg, Literal) or not arg.text:
        raise ArgumentTypeError(plugin.name, what, arg)
    return arg.text


def require_child(plugin: Plugin, arg: Argument, family: type[P]) -> P:
    """Return ``arg`` as a child plugin of the given family.

    Raises:
        ArgumentTypeError: If ``arg`` is a literal or from another family.
    """
    if not isinstance(arg, family):
        raise ArgumentTypeError(plugin.name, f"a nested {family.__name__.lower()} expression", arg)
    return arg


class Registry(Generic[P]):
    """Name-to-factory mapping for one plugin family.

    Registration happens at import time. The first call to ``make`` or
    ``build`` freezes the registry; later registrations raise.

    Attributes:
        family: Human-readable family name ("executor", ...).
    """

    def __init__(self, family: str) -> None:
        self.family = family
        self._factories: dict[str, Callable[[], P]] = {}
        self._frozen = False

    def register(self, name: str) -> Callable[[Callable[[], P]], Callable[[], P]]:
        """Decorator registering a zero-argument factory (usually a class) under ``name``.

        Raises:
            RuntimeError: If the registry is frozen or ``name`` is taken.
        """

        def decorator(factory: Callable[[], P]) -> Callable[[], P]:
            if self._frozen:
                raise RuntimeError(f"{self.family} registry is frozen; cannot add {name!r}")
            if name in self._factories:
                raise RuntimeError(f"{self.family} {name!r} is already registered")
            self._factories[name] = factory
            return factory

        return decorator

    def names(self) -> list[str]:
        """Return the registered names, sorted."""
        return sorted(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def make(self, definition: str) -> P:
        """Parse ``definition`` and build the plugin tree it describes.

        Args:
            definition: Text such as ``"(list (first) (id))"``.

        Returns:
            P: The fully bound root plugin.

        Raises:
            ParseError: If the definition is malformed.
            UnknownPluginError: If any name is not registered.
            ArgumentError: If any plugin rejects its arguments.
        """
        tree = parse(definition)
        plugin = self.build(tree)
        logger.debug("Built %s %s from %r", self.family, plugin, definition)
        return plugin

    def build(self, expr: SList) -> P:
        """Build and bind the plugin for an already-parsed list."""
        self._frozen = True

        name = expr.head.text
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownPluginError(self.family, name, self._factories)

        args: list[Argument] = [
            Literal(item.text) if isinstance(item, Atom) else self.build(item)
            for item in expr.tail
        ]
        plugin = factory()
        plugin.bind(args)
        return plugin
