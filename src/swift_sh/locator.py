"""Locating the external build tool."""

import os
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .cache_paths import RuntimeContext
from .cli_config import get_config
from .structured_logging import get_build_logger

WhichRunner = Callable[[Sequence[str]], Optional[str]]


def search_path(ctx: RuntimeContext) -> List[Path]:
    """
    Directories listed in PATH, relative entries anchored at ``ctx.cwd``.

    Empty entries are skipped.
    """
    raw = ctx.environ.get("PATH")
    if not raw:
        return []

    directories = []
    for entry in raw.split(os.pathsep):
        if not entry:
            continue
        path = Path(entry)
        directories.append(path if path.is_absolute() else ctx.cwd / path)
    return directories


def is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def run_which(command: Sequence[str]) -> Optional[str]:
    """Run a ``which``-style lookup, returning stdout or None on any failure."""
    try:
        completed = subprocess.run(
            list(command),
            text=True,
            capture_output=True,
            check=False,
        )
    except (OSError, ValueError):
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout


def find_executable(
    tool: str,
    ctx: RuntimeContext,
    runner: WhichRunner = run_which,
) -> Path:
    """
    Find ``tool``: PATH first, then ``which``, then a fixed fallback path.

    Never raises; whether the result exists is left to the exec attempt.

    Args:
        tool: Executable name
        ctx: Runtime context providing PATH and the working directory
        runner: Callable running the ``which`` lookup

    Returns:
        Path: Resolved executable path
    """
    build = get_config().build
    logger = get_build_logger()

    for directory in search_path(ctx):
        candidate = directory / tool
        if is_executable(candidate):
            logger.debug("executable_located", tool=tool, path=str(candidate), source="PATH")
            return candidate

    output = runner([build.which_path, tool])
    located = (output or "").strip()
    if located:
        logger.debug("executable_located", tool=tool, path=located, source="which")
        return Path("/") / located

    fallback = build.fallback_executable or f"/usr/bin/{tool}"
    logger.debug("executable_located", tool=tool, path=fallback, source="fallback")
    return Path(fallback)
