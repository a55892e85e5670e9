"""Logging setup for the command-line tool."""

import logging

from rich.console import Console
from rich.logging import RichHandler


class OutputHandler(logging.Handler):
    """Write remote command output one record per physical line.

    Records tagged ``stream="stdout"`` go to the stdout console, everything
    else to the stderr console. Text is written as-is: no wrapping, no
    markup, no highlighting.
    """

    def __init__(self, stdout: Console, stderr: Console) -> None:
        super().__init__()
        self.stdout = stdout
        self.stderr = stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            console = self.stdout if getattr(record, "stream", None) == "stdout" else self.stderr
            console.out(message, highlight=False)
        except Exception:
            self.handleError(record)


def configure_logging(
    level: str = "WARNING",
    console: Console | None = None,
    output_console: Console | None = None,
) -> RichHandler:
    """Send easyssh log records to stderr through rich.

    ``level`` applies to easyssh's own messages. Remote command output on
    the ``easyssh.output`` logger is always shown, through its own
    ``OutputHandler``.

    Args:
        level: Logging level name, e.g. "DEBUG".
        console: Console for diagnostics and remote stderr. Defaults to a
            stderr console.
        output_console: Console for remote stdout. Defaults to a stdout
            console.

    Returns:
        RichHandler: The installed diagnostics handler.
    """
    console = console or Console(stderr=True)
    handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("easyssh")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    output = logging.getLogger("easyssh.output")
    for old in list(output.handlers):
        output.removeHandler(old)
    output.addHandler(OutputHandler(output_console or Console(), console))
    # Reason: a quiet log level must not hide the output of remote commands.
    output.setLevel(logging.INFO)
    output.propagate = False
    return handler
