"""
Shared fixtures for swift-sh tests.
"""

import json
import pytest

from src.swift_sh.cache_paths import RuntimeContext
from src.swift_sh.cli_config import reset_config
from src.swift_sh.dependency import (
    Exact,
    ImportSpecification,
    Ref,
    UpToNextMajor,
    Version,
)
from src.swift_sh.error_handling import get_error_handler


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user config files and SWIFT_SH_* variables out of every test."""
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(workdir)
    for key in [
        "SWIFT_SH_TOOL",
        "SWIFT_SH_TOOLS_VERSION",
        "SWIFT_SH_WHICH",
        "SWIFT_SH_FALLBACK_EXECUTABLE",
        "SWIFT_SH_LOG_LEVEL",
        "SWIFT_SH_ATOMIC_WRITES",
    ]:
        monkeypatch.delenv(key, raising=False)

    reset_config()
    get_error_handler().reset_stats()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Scratch directory for test files."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return scratch


@pytest.fixture
def linux_ctx(tmp_path):
    """Runtime context for a Linux host whose cache lives under tmp_path."""
    return RuntimeContext(
        environ={"XDG_CACHE_HOME": str(tmp_path / "cache"), "PATH": ""},
        home=tmp_path / "home",
        cwd=tmp_path / "work",
        platform="linux",
    )


@pytest.fixture
def sample_dependencies():
    return [
        ImportSpecification("mxcl/PromiseKit", "PromiseKit", UpToNextMajor(Version(6, 0, 0))),
        ImportSpecification("https://example.com/Foo.git", "Foo", Exact(Version(1, 2, 3))),
        ImportSpecification("owner/Bar", "Bar", Ref("main")),
    ]


@pytest.fixture
def deps_json_file(temp_dir):
    deps_file = temp_dir / "deps.json"
    deps_file.write_text(
        json.dumps(
            [
                {"name": "mxcl/PromiseKit", "import_name": "PromiseKit", "up_to_next_major": "6.0.0"},
                {"name": "https://example.com/Foo.git", "import_name": "Foo", "exact": "1.2.3"},
                {"name": "owner/Bar", "import_name": "Bar", "ref": "main"},
            ]
        )
    )
    return deps_file


@pytest.fixture
def script_file(temp_dir):
    script = temp_dir / "hello.swift"
    script.write_text('import PromiseKit\nprint("hello")\n')
    return script
