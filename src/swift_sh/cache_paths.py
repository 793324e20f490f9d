"""
Cache location for script build units.

Process-wide state (environment, home directory, working directory and
platform) is captured once in a RuntimeContext so path resolution stays a
pure function of its inputs.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .cli_config import get_config

XDG_CACHE_HOME = "XDG_CACHE_HOME"


@dataclass(frozen=True)
class RuntimeContext:
    """Snapshot of the process state that cache and tool lookup depend on."""

    environ: Mapping[str, str] = field(default_factory=dict)
    home: Path = Path("/")
    cwd: Path = Path("/")
    platform: str = "linux"

    @classmethod
    def from_process(cls) -> "RuntimeContext":
        """Capture the running process' environment."""
        return cls(
            environ=dict(os.environ),
            home=Path.home(),
            cwd=Path.cwd(),
            platform=sys.platform,
        )

    @property
    def is_apple_desktop(self) -> bool:
        return self.platform == "darwin"


def cache_root(ctx: RuntimeContext, cache_dir_name: str = "") -> Path:
    """
    Compute the cache root for all build units.

    macOS uses ``~/Library/Developer/<name>.cache``. Elsewhere a non-empty
    ``XDG_CACHE_HOME`` wins, falling back to ``~/.cache/<name>``.

    Args:
        ctx: Runtime context to resolve against
        cache_dir_name: Directory name, defaults to the configured one

    Returns:
        Path: Absolute cache root
    """
    name = cache_dir_name or get_config().cache.cache_dir_name

    if ctx.is_apple_desktop:
        return ctx.home / "Library" / "Developer" / f"{name}.cache"

    xdg = ctx.environ.get(XDG_CACHE_HOME)
    if xdg:
        # relative values are anchored at the filesystem root
        return Path("/") / xdg / name
    return ctx.home / ".cache" / name


def unit_path(name: str, ctx: RuntimeContext, cache_dir_name: str = "") -> Path:
    """Directory of the build unit called ``name``."""
    return cache_root(ctx, cache_dir_name) / name
