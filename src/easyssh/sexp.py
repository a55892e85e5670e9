"""S-expression parser for plugin definitions.

Grammar::

    expr := atom | "(" expr* ")"
    atom := run of characters other than whitespace, "(" and ")"

A definition must parse to exactly one list whose first element is an atom
naming the plugin. Nested lists must follow the same rule, so every
structural problem is reported here, before any plugin is constructed.
"""

from dataclasses import dataclass
from typing import Union

from easyssh.errors import ParseError


PARENS = "()"


@dataclass(frozen=True)
class Atom:
    """A bare token.

    Attributes:
        text: The token text, never empty.
    """

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class SList:
    """A parenthesised list of expressions.

    Attributes:
        items: The elements in source order.
    """

    items: tuple["Expression", ...]

    @property
    def head(self) -> Atom:
        """The plugin name (first element)."""
        return self.items[0]  # type: ignore[return-value]

    @property
    def tail(self) -> tuple["Expression", ...]:
        """The plugin arguments (all elements after the head)."""
        return self.items[1:]

    def __str__(self) -> str:
        return "(" + " ".join(str(item) for item in self.items) + ")"


Expression = Union[Atom, SList]


def tokenize(text: str) -> list[str]:
    """Split definition text into "(", ")" and atom tokens.

    Args:
        text: Raw definition string.

    Returns:
        list[str]: Tokens in source order.
    """
    tokens: list[str] = []
    current: list[str] = []

    for char in text:
        if char.isspace() or char in PARENS:
            if current:
                tokens.append("".join(current))
                current = []
            if char in PARENS:
                tokens.append(char)
        else:
            current.append(char)

    if current:
        tokens.append("".join(current))
    return tokens


def parse(text: str) -> SList:
    """Parse a plugin definition into its expression tree.

    Args:
        text: Definition such as ``"(if-args (ssh-exec-parallel) (ssh-login))"``.

    Returns:
        SList: The top-level list; its head names the plugin.

    Raises:
        ParseError: On empty input, unbalanced parentheses, trailing
            content, a bare top-level atom, or a list without a name.
    """
    tokens = tokenize(text)
    if not tokens:
        raise ParseError("Empty expression", text)

    expr, pos = _parse_expr(tokens, 0, text)
    if pos != len(tokens):
        raise ParseError(f"Unexpected {tokens[pos]!r} after expression", text)

    if isinstance(expr, Atom):
        raise ParseError(f"Expected a parenthesised expression, got atom {expr.text!r}", text)

    _check_heads(expr, text)
    return expr


def _parse_expr(tokens: list[str], pos: int, text: str) -> tuple[Expression, int]:
    """Parse one expression starting at ``tokens[pos]``.

    Returns:
        tuple[Expression, int]: The expression and the index after it.
    """
    token = tokens[pos]

    if token == ")":
        raise ParseError("Unbalanced ')'", text)

    if token != "(":
        return Atom(token), pos + 1

    items: list[Expression] = []
    pos += 1
    while pos < len(tokens) and tokens[pos] != ")":
        item, pos = _parse_expr(tokens, pos, text)
        items.append(item)

    if pos >= len(tokens):
        raise ParseError("Unbalanced '(' (missing ')')", text)

    return SList(tuple(items)), pos + 1


def _check_heads(expr: SList, text: str) -> None:
    """Ensure every list in the tree starts with a plugin name."""
    if not expr.items:
        raise ParseError("Empty list '()' has no plugin name", text)
    if not isinstance(expr.items[0], Atom):
        raise ParseError(f"Plugin name expected, got {expr.items[0]}", text)

    for item in expr.tail:
        if isinstance(item, SList):
            _check_heads(item, text)
