"""
Core functionality tests for swift-sh.
Tests dependency descriptors, manifest rendering, cache paths and the
build unit materializer.
"""

import os
import re
import stat
import pytest
from pathlib import Path
from unittest.mock import patch

from src.swift_sh import script as script_module
from src.swift_sh.cache_paths import RuntimeContext, cache_root, unit_path
from src.swift_sh.cli_config import reset_config
from src.swift_sh.dependency import (
    Exact,
    ImportSpecification,
    Ref,
    UpToNextMajor,
    Version,
    constraint_from_dict,
)
from src.swift_sh.manifest import (
    package_line,
    render_manifest,
    requirement_clause,
    resolve_origin_url,
)
from src.swift_sh.parsers import load_dependency_file, parse_dependency_specs
from src.swift_sh.script import Script


def parse_requirement(clause: str):
    """Read a rendered requirement clause back into a constraint."""
    if match := re.fullmatch(r'\.upToNextMajor\(from: "(\d+)\.(\d+)\.(\d+)"\)', clause):
        return UpToNextMajor(Version(*map(int, match.groups())))
    if match := re.fullmatch(r"\.exactItem\(Version\((\d+),(\d+),(\d+)\)\)", clause):
        return Exact(Version(*map(int, match.groups())))
    if match := re.fullmatch(r'\.revision\("(.*)"\)', clause):
        return Ref(match.group(1))
    raise AssertionError(f"unparseable clause: {clause}")


class TestDependencyDescriptor:
    """Test dependency specifications and constraints."""

    def test_version_parse_fills_missing_components(self):
        assert Version.parse("1.2.3") == Version(1, 2, 3)
        assert Version.parse("1.2") == Version(1, 2, 0)
        assert Version.parse("v4") == Version(4, 0, 0)
        assert str(Version(6, 0, 1)) == "6.0.1"

    def test_version_parse_rejects_garbage(self):
        with pytest.raises(ValueError, match="Invalid version"):
            Version.parse("one.two")

    def test_empty_dependency_name_rejected(self):
        with pytest.raises(ValueError, match="dependency_name"):
            ImportSpecification("", "Foo", Ref("main"))

    def test_shorthand_is_not_validated(self):
        spec = ImportSpecification("not even a repo", "Foo", Ref("main"))
        assert resolve_origin_url(spec.dependency_name) == "https://github.com/not even a repo.git"

    def test_constraint_requires_exactly_one_key(self):
        with pytest.raises(ValueError, match="exactly one"):
            constraint_from_dict({"exact": "1.0.0", "ref": "main"})
        with pytest.raises(ValueError, match="exactly one"):
            constraint_from_dict({})

    def test_from_dict_accepts_nested_constraint(self):
        spec = ImportSpecification.from_dict(
            {"dependency_name": "a/b", "import_name": "B", "constraint": {"exact": "2.0.1"}}
        )
        assert spec.constraint == Exact(Version(2, 0, 1))
        assert ImportSpecification.from_dict(spec.to_dict()) == spec


class TestManifestRendering:
    """Test Package.swift generation."""

    def test_shorthand_expands_to_github(self):
        assert resolve_origin_url("foo/bar") == "https://github.com/foo/bar.git"

    def test_url_with_scheme_used_verbatim(self):
        assert resolve_origin_url("https://example.com/x.git") == "https://example.com/x.git"
        assert resolve_origin_url("ssh://git@example.com/x.git") == "ssh://git@example.com/x.git"

    @pytest.mark.parametrize(
        "constraint",
        [
            UpToNextMajor(Version(1, 4, 0)),
            Exact(Version(2, 0, 7)),
            Ref("feature/branch"),
        ],
    )
    def test_requirement_clause_reparses(self, constraint):
        assert parse_requirement(requirement_clause(constraint)) == constraint

    def test_package_line_shape(self):
        line = package_line(ImportSpecification("mxcl/Path.swift", "Path", UpToNextMajor(Version(0, 16, 0))))
        assert line == '.package(url: "https://github.com/mxcl/Path.swift.git", .upToNextMajor(from: "0.16.0"))'

    def test_render_is_deterministic(self, sample_dependencies):
        first = render_manifest("tool", sample_dependencies)
        second = render_manifest("tool", list(sample_dependencies))
        assert first == second
        assert first.encode() == second.encode()

    def test_render_full_manifest(self, sample_dependencies):
        expected = (
            "// swift-tools-version:4.2\n"
            "\n"
            "import PackageDescription\n"
            "\n"
            'let pkg = Package(name: "tool")\n'
            "pkg.products = [\n"
            '    .executable(name: "tool", targets: ["tool"])\n'
            "]\n"
            "pkg.dependencies = [\n"
            '    .package(url: "https://github.com/mxcl/PromiseKit.git", .upToNextMajor(from: "6.0.0")),\n'
            '    .package(url: "https://example.com/Foo.git", .exactItem(Version(1,2,3))),\n'
            '    .package(url: "https://github.com/owner/Bar.git", .revision("main"))\n'
            "]\n"
            "pkg.targets = [\n"
            '    .target(name: "tool", dependencies: [\n'
            '        "PromiseKit", "Foo", "Bar"\n'
            '    ], path: ".", sources: ["main.swift"])\n'
            "]\n"
        )
        assert render_manifest("tool", sample_dependencies) == expected

    def test_dependency_order_preserved(self, sample_dependencies):
        manifest = render_manifest("tool", list(reversed(sample_dependencies)))
        assert manifest.index("owner/Bar") < manifest.index("PromiseKit.git")
        assert '"Bar", "Foo", "PromiseKit"' in manifest

    def test_tools_version_parameter(self):
        assert render_manifest("x", [], tools_version="5.9").startswith("// swift-tools-version:5.9\n")


class TestCachePaths:
    """Test cache directory resolution."""

    def test_xdg_cache_home(self):
        ctx = RuntimeContext(environ={"XDG_CACHE_HOME": "/tmp/c"}, home=Path("/home/u"))
        assert unit_path("abc", ctx) == Path("/tmp/c/swift-sh/abc")

    def test_xdg_unset_falls_back_to_home(self):
        ctx = RuntimeContext(environ={}, home=Path("/home/u"))
        assert unit_path("abc", ctx) == Path("/home/u/.cache/swift-sh/abc")

    def test_empty_xdg_treated_as_unset(self):
        ctx = RuntimeContext(environ={"XDG_CACHE_HOME": ""}, home=Path("/home/u"))
        assert cache_root(ctx) == Path("/home/u/.cache/swift-sh")

    def test_relative_xdg_anchored_at_root(self):
        ctx = RuntimeContext(environ={"XDG_CACHE_HOME": "var/cache"}, home=Path("/home/u"))
        assert cache_root(ctx) == Path("/var/cache/swift-sh")

    def test_macos_ignores_xdg(self):
        ctx = RuntimeContext(
            environ={"XDG_CACHE_HOME": "/tmp/c"}, home=Path("/Users/u"), platform="darwin"
        )
        assert unit_path("abc", ctx) == Path("/Users/u/Library/Developer/swift-sh.cache/abc")

    def test_from_process_snapshots_environment(self, monkeypatch):
        monkeypatch.setenv("XDG_CACHE_HOME", "/tmp/snap")
        ctx = RuntimeContext.from_process()
        assert ctx.environ["XDG_CACHE_HOME"] == "/tmp/snap"
        assert ctx.cwd == Path.cwd()


class TestMaterializer:
    """Test writing and reusing build units."""

    def test_first_materialize_writes_both_files(self, linux_ctx, sample_dependencies):
        script = Script("tool", ["import Foo", "print(1)"], sample_dependencies)

        assert script.materialize(linux_ctx) is True

        unit = script.path(linux_ctx)
        assert (unit / "main.swift").read_text() == "import Foo\nprint(1)"
        assert (unit / "Package.swift").read_text() == render_manifest("tool", sample_dependencies)

    def test_identical_script_performs_no_writes(self, linux_ctx):
        script = Script("tool", ["print(1)"])
        script.materialize(linux_ctx)
        main_swift = script.path(linux_ctx) / "main.swift"
        before = main_swift.stat().st_mtime_ns

        with patch.object(script_module, "write_file") as write_file:
            assert Script("tool", ["print(1)"]).materialize(linux_ctx) is False
            write_file.assert_not_called()

        assert main_swift.stat().st_mtime_ns == before

    def test_one_byte_difference_triggers_rewrite(self, linux_ctx):
        Script("tool", ["print(1)"]).materialize(linux_ctx)

        changed = Script("tool", ["print(2)"])
        with patch.object(script_module, "write_file", wraps=script_module.write_file) as write_file:
            assert changed.materialize(linux_ctx) is True
            written = [call.args[0].name for call in write_file.call_args_list]

        assert written == ["Package.swift", "main.swift"]
        assert (changed.path(linux_ctx) / "main.swift").read_bytes() == b"print(2)"

    def test_changed_dependencies_rewrite_manifest(self, linux_ctx):
        old = ImportSpecification("a/b", "B", Exact(Version(1, 0, 0)))
        new = ImportSpecification("a/b", "B", Exact(Version(2, 0, 0)))
        Script("tool", ["print(1)"], [old]).materialize(linux_ctx)

        script = Script("tool", ["print(1)"], [new])
        assert script.materialize(linux_ctx) is True

        manifest = (script.path(linux_ctx) / "Package.swift").read_text()
        assert ".exactItem(Version(2,0,0))" in manifest
        assert script.materialize(linux_ctx) is False

    def test_changed_tools_version_rewrites_manifest(self, linux_ctx, monkeypatch):
        Script("tool", ["print(1)"]).materialize(linux_ctx)

        monkeypatch.setenv("SWIFT_SH_TOOLS_VERSION", "5.9")
        reset_config()
        script = Script("tool", ["print(1)"])

        assert script.materialize(linux_ctx) is True
        manifest = (script.path(linux_ctx) / "Package.swift").read_text()
        assert manifest.startswith("// swift-tools-version:5.9\n")

    def test_unreadable_script_counts_as_mismatch(self, linux_ctx):
        script = Script("tool", ["print(1)"])
        script.materialize(linux_ctx)
        main_swift = script.path(linux_ctx) / "main.swift"
        main_swift.unlink()
        main_swift.mkdir()  # reading a directory raises OSError

        assert script.should_write_files(linux_ctx) is True

    def test_missing_manifest_counts_as_mismatch(self, linux_ctx):
        script = Script("tool", ["print(1)"])
        script.materialize(linux_ctx)
        (script.path(linux_ctx) / "Package.swift").unlink()

        assert script.should_write_files(linux_ctx) is True

    def test_script_lines_joined_in_order(self):
        assert Script("x", ["b", "a", "", "c"]).script == "b\na\n\nc"

    def test_write_failure_propagates(self, linux_ctx, tmp_path):
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory")

        with pytest.raises(OSError):
            Script("tool", ["print(1)"]).materialize(linux_ctx)

    def test_atomic_write_leaves_no_temp_files(self, linux_ctx):
        script = Script("tool", ["print(1)"])
        script.materialize(linux_ctx)
        assert sorted(p.name for p in script.path(linux_ctx).iterdir()) == [
            "Package.swift",
            "main.swift",
        ]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
    def test_atomic_write_uses_umask_permissions(self, linux_ctx):
        script = Script("tool", ["print(1)"])
        script.materialize(linux_ctx)

        expected = 0o666 & ~script_module.current_umask()
        for name in ["Package.swift", "main.swift"]:
            mode = stat.S_IMODE((script.path(linux_ctx) / name).stat().st_mode)
            assert mode == expected

    def test_non_atomic_writes(self, linux_ctx, monkeypatch):
        monkeypatch.setenv("SWIFT_SH_ATOMIC_WRITES", "false")
        script = Script("tool", ["print(1)"])
        assert script.materialize(linux_ctx) is True
        assert (script.path(linux_ctx) / "main.swift").read_text() == "print(1)"


class TestDependencyDocuments:
    """Test loading dependency documents."""

    def test_load_json(self, deps_json_file, sample_dependencies):
        assert load_dependency_file(str(deps_json_file)) == sample_dependencies

    def test_load_yaml(self, temp_dir):
        deps_file = temp_dir / "deps.yaml"
        deps_file.write_text(
            "dependencies:\n"
            "  - name: owner/Bar\n"
            "    import_name: Bar\n"
            "    constraint:\n"
            "      ref: main\n"
        )
        assert load_dependency_file(str(deps_file)) == [
            ImportSpecification("owner/Bar", "Bar", Ref("main"))
        ]

    def test_malformed_entry_reports_index(self):
        with pytest.raises(ValueError, match="Dependency #1"):
            parse_dependency_specs(
                [
                    {"name": "a/b", "import_name": "B", "ref": "main"},
                    {"name": "c/d", "ref": "main"},
                ]
            )

    def test_unsupported_extension(self, temp_dir):
        deps_file = temp_dir / "deps.txt"
        deps_file.write_text("[]")
        with pytest.raises(ValueError, match="Unsupported file type"):
            load_dependency_file(str(deps_file))

    def test_nonexistent_file(self):
        with pytest.raises(ValueError, match="File does not exist"):
            load_dependency_file("nonexistent.json")

    def test_empty_document(self, temp_dir):
        deps_file = temp_dir / "deps.yml"
        deps_file.write_text("")
        assert load_dependency_file(str(deps_file)) == []
