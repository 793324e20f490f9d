"""
Package.swift rendering for cached script build units.

Rendering is pure and deterministic: the materializer relies on identical
inputs producing identical bytes.
"""

from typing import Sequence
from urllib.parse import urlparse

from .dependency import Constraint, Exact, ImportSpecification, Ref, UpToNextMajor

DEFAULT_TOOLS_VERSION = "4.2"
MANIFEST_FILENAME = "Package.swift"
SCRIPT_FILENAME = "main.swift"


def resolve_origin_url(dependency_name: str) -> str:
    """
    Resolve the git origin of a dependency.

    Names carrying a URL scheme are used verbatim; anything else is
    treated as GitHub ``owner/repo`` shorthand.

    Args:
        dependency_name: Full URL or ``owner/repo`` shorthand

    Returns:
        str: Origin URL for the manifest
    """
    if urlparse(dependency_name).scheme:
        return dependency_name
    return f"https://github.com/{dependency_name}.git"


def requirement_clause(constraint: Constraint) -> str:
    if isinstance(constraint, UpToNextMajor):
        return f'.upToNextMajor(from: "{constraint.from_version}")'
    if isinstance(constraint, Exact):
        v = constraint.version
        return f".exactItem(Version({v.major},{v.minor},{v.patch}))"
    if isinstance(constraint, Ref):
        return f'.revision("{constraint.ref}")'
    raise TypeError(f"Unknown constraint: {constraint!r}")


def package_line(spec: ImportSpecification) -> str:
    """Render the ``.package(...)`` declaration for one dependency."""
    origin = resolve_origin_url(spec.dependency_name)
    return f'.package(url: "{origin}", {requirement_clause(spec.constraint)})'


def render_manifest(
    name: str,
    dependencies: Sequence[ImportSpecification],
    tools_version: str = DEFAULT_TOOLS_VERSION,
    script_filename: str = SCRIPT_FILENAME,
) -> str:
    """
    Render the Package.swift text for a build unit.

    Dependency order is preserved in both the package and target arrays.

    Args:
        name: Build unit name, used for package, product and target
        dependencies: Ordered dependency specifications
        tools_version: swift-tools-version marker
        script_filename: Single source file of the target

    Returns:
        str: Manifest text ending with a newline
    """
    package_lines = ",\n    ".join(package_line(dep) for dep in dependencies)
    import_names = ", ".join(f'"{dep.import_name}"' for dep in dependencies)

    return (
        f"// swift-tools-version:{tools_version}\n"
        "\n"
        "import PackageDescription\n"
        "\n"
        f'let pkg = Package(name: "{name}")\n'
        "pkg.products = [\n"
        f'    .executable(name: "{name}", targets: ["{name}"])\n'
        "]\n"
        "pkg.dependencies = [\n"
        f"    {package_lines}\n"
        "]\n"
        "pkg.targets = [\n"
        f'    .target(name: "{name}", dependencies: [\n'
        f"        {import_names}\n"
        f'    ], path: ".", sources: ["{script_filename}"])\n'
        "]\n"
    )
