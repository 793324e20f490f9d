"""
Script build units.

A Script is materialized as a Swift package inside the cache. Files are
only rewritten when the cached manifest or script differs from the
requested one so that swift-build can recognise a null build and skip
recompiling.
"""

import os
import tempfile
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

from .cache_paths import RuntimeContext, unit_path
from .cli_config import get_config
from .dependency import ImportSpecification
from .handoff import Exec, handoff
from .locator import find_executable
from .manifest import render_manifest
from .structured_logging import get_cache_logger


def current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_file(path: Path, data: bytes, atomic: bool = True) -> None:
    """Replace ``path`` with ``data``; atomic writes go through a sibling temp file."""
    if not atomic:
        path.write_bytes(data)
        return

    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        # mkstemp creates 0600; match what a plain write would produce
        os.chmod(tmp_name, 0o666 & ~current_umask())
        os.replace(tmp_name, str(path))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class Script:
    """
    One cached build unit: a name, the script text and its dependencies.

    The instance is never mutated after construction.
    """

    def __init__(
        self,
        name: str,
        contents: Sequence[str],
        dependencies: Sequence[ImportSpecification] = (),
    ):
        self.name = name
        self.script = "\n".join(contents)
        self.deps: List[ImportSpecification] = list(dependencies)

    def __repr__(self) -> str:
        return f"Script(name={self.name!r}, dependencies={len(self.deps)})"

    def path(self, ctx: RuntimeContext) -> Path:
        return unit_path(self.name, ctx)

    @property
    def manifest(self) -> str:
        config = get_config()
        return render_manifest(
            self.name,
            self.deps,
            tools_version=config.build.tools_version,
            script_filename=config.cache.script_filename,
        )

    def should_write_files(self, ctx: RuntimeContext) -> bool:
        """
        Whether the cached manifest or script differs from this unit.

        An unreadable cached file counts as different.
        """
        cache = get_config().cache
        directory = self.path(ctx)
        expected = [
            (directory / cache.manifest_filename, self.manifest.encode("utf-8")),
            (directory / cache.script_filename, self.script.encode("utf-8")),
        ]

        for cached, data in expected:
            try:
                existing = cached.read_bytes()
            except OSError as e:
                get_cache_logger().debug(
                    "cache_read_fallback", unit=self.name, path=str(cached), error=str(e)
                )
                return True
            if existing != data:
                return True
        return False

    def write(self, ctx: RuntimeContext) -> None:
        """
        Write the manifest and the script into the unit directory.

        Raises:
            OSError: The directory or one of the files could not be written
        """
        cache = get_config().cache
        directory = self.path(ctx)
        directory.mkdir(parents=True, exist_ok=True)

        write_file(
            directory / cache.manifest_filename,
            self.manifest.encode("utf-8"),
            atomic=cache.atomic_writes,
        )
        write_file(
            directory / cache.script_filename,
            self.script.encode("utf-8"),
            atomic=cache.atomic_writes,
        )

    def materialize(self, ctx: RuntimeContext) -> bool:
        """
        Bring the unit directory up to date.

        Returns:
            bool: True if files were written, False if the cache was reused
        """
        logger = get_cache_logger()
        if not self.should_write_files(ctx):
            logger.info("build_unit_reused", unit=self.name, path=str(self.path(ctx)))
            return False

        self.write(ctx)
        logger.info(
            "build_unit_written",
            unit=self.name,
            path=str(self.path(ctx)),
            dependencies=[dep.dependency_name for dep in self.deps],
        )
        return True

    def run(self, ctx: Optional[RuntimeContext] = None, execv: Optional[Exec] = None) -> NoReturn:
        """
        Materialize the unit and hand the process over to ``swift run``.

        Raises:
            OSError: Writing the unit failed
            DirectoryChangeFailed: The unit directory could not be entered
            SwiftRunFailed: The build tool could not be executed
        """
        ctx = ctx or RuntimeContext.from_process()
        build = get_config().build

        self.materialize(ctx)

        swift = find_executable(build.tool_name, ctx)
        handoff(
            self.path(ctx),
            swift,
            arguments=[build.subcommand],
            tool_name=build.tool_name,
            execv=execv,
        )
