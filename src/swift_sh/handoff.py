"""
Handing the process over to the build tool.

On POSIX the current process image is replaced, so a successful handoff
never returns. Where no real exec exists the tool is spawned with the
inherited stdio and its exit status becomes ours.
"""

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, NoReturn, Optional, Sequence

from .error_handling import DirectoryChangeFailed, SwiftRunFailed
from .structured_logging import get_build_logger

Exec = Callable[[str, List[str]], None]


def spawn_and_exit(executable: str, argv: List[str]) -> NoReturn:
    """Run the tool as a child with inherited stdio and exit with its status."""
    completed = subprocess.run([executable] + argv[1:], check=False)
    sys.exit(completed.returncode)


def default_exec() -> Exec:
    if os.name == "nt":
        return spawn_and_exit
    return os.execv


def handoff(
    unit_dir: Path,
    executable: Path,
    arguments: Sequence[str] = ("run",),
    tool_name: str = "swift",
    execv: Optional[Exec] = None,
    chdir: Optional[Callable[[str], None]] = None,
) -> NoReturn:
    """
    Change into ``unit_dir`` and replace this process with ``executable``.

    ``argv[0]`` is the resolved executable path; environment and file
    descriptors are inherited.

    Raises:
        DirectoryChangeFailed: ``unit_dir`` could not become the working directory
        SwiftRunFailed: The exec call failed, carrying its errno
    """
    execv = execv or default_exec()
    chdir = chdir or os.chdir

    try:
        chdir(str(unit_dir))
    except OSError as e:
        raise DirectoryChangeFailed(unit_dir, e) from e

    argv = [str(executable)] + list(arguments)
    get_build_logger().info(
        "process_handoff", executable=str(executable), argv=argv, cwd=str(unit_dir)
    )

    # buffered output is lost once the image is replaced
    sys.stdout.flush()
    sys.stderr.flush()

    try:
        execv(str(executable), argv)
    except OSError as e:
        raise SwiftRunFailed(executable, e.errno or 0, tool_name) from e

    raise RuntimeError("exec returned without replacing the process")
