"""Binary lookup and in-place process replacement."""

import logging
import os
import shutil
import sys
from typing import NoReturn

from easyssh.errors import BinaryNotFoundError


logger = logging.getLogger(__name__)


def which_or_raise(binary: str) -> str:
    """Resolve ``binary`` on $PATH.

    Args:
        binary: Program name, e.g. "ssh".

    Returns:
        str: Absolute path to the program.

    Raises:
        BinaryNotFoundError: If the program is not on $PATH.
    """
    path = shutil.which(binary)
    if path is None:
        raise BinaryNotFoundError(binary)
    return path


def replace_process(binary: str, args: list[str]) -> NoReturn:
    """Replace the current process with ``binary args...``.

    The current environment is forwarded unchanged. On success this never
    returns; nothing after the call (cleanup handlers included) runs.

    Args:
        binary: Program name to look up on $PATH.
        args: Arguments after argv[0].

    Raises:
        BinaryNotFoundError: If the program is not on $PATH.
    """
    path = which_or_raise(binary)
    argv = [path, *args]
    logger.info("Executing %s", argv)

    # Reason: execve does not flush Python-level buffers; anything already
    # logged or printed must reach the terminal before the image is replaced.
    for handler in logging.getLogger("easyssh").handlers:
        handler.flush()
    sys.stdout.flush()
    sys.stderr.flush()

    os.execve(path, argv, dict(os.environ))
