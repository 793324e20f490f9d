# In src/swift_sh/dependency.py
import re
from dataclasses import dataclass
from typing import Any, Dict, Union

_VERSION_PATTERN = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?$")


@dataclass(frozen=True)
class Version:
    """A semantic version reduced to its major/minor/patch triple."""

    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, text: str) -> "Version":
        """
        Parse ``1.2.3``, ``1.2``, ``1`` or a ``v``-prefixed variant.

        Raises:
            ValueError: If the text is not a version
        """
        match = _VERSION_PATTERN.match(str(text).strip())
        if not match:
            raise ValueError(f"Invalid version: {text!r}")
        major, minor, patch = (int(part) if part else 0 for part in match.groups())
        return cls(major, minor, patch)


@dataclass(frozen=True)
class UpToNextMajor:
    """Any version from ``from_version`` up to, but excluding, the next major."""

    from_version: Version


@dataclass(frozen=True)
class Exact:
    """Exactly one pinned version."""

    version: Version


@dataclass(frozen=True)
class Ref:
    """A branch, tag or commit identifier."""

    ref: str


Constraint = Union[UpToNextMajor, Exact, Ref]

CONSTRAINT_KEYS = ("up_to_next_major", "exact", "ref")


def constraint_from_dict(data: Dict[str, Any]) -> Constraint:
    """
    Build a constraint from a mapping holding exactly one constraint key.

    Args:
        data: Mapping such as ``{"exact": "1.2.3"}``

    Returns:
        Constraint: The matching constraint variant

    Raises:
        ValueError: If zero or several constraint keys are present
    """
    present = [key for key in CONSTRAINT_KEYS if key in data]
    if len(present) != 1:
        raise ValueError(
            f"Expected exactly one of {', '.join(CONSTRAINT_KEYS)}, got {present or 'none'}"
        )

    key = present[0]
    value = data[key]
    if key == "up_to_next_major":
        return UpToNextMajor(Version.parse(value))
    if key == "exact":
        return Exact(Version.parse(value))
    if not value:
        raise ValueError("ref constraint must not be empty")
    return Ref(str(value))


def constraint_to_dict(constraint: Constraint) -> Dict[str, str]:
    if isinstance(constraint, UpToNextMajor):
        return {"up_to_next_major": str(constraint.from_version)}
    if isinstance(constraint, Exact):
        return {"exact": str(constraint.version)}
    return {"ref": constraint.ref}


@dataclass(frozen=True)
class ImportSpecification:
    """One external dependency declared by a script."""

    dependency_name: str
    import_name: str
    constraint: Constraint

    def __post_init__(self):
        if not self.dependency_name:
            raise ValueError("dependency_name must not be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportSpecification":
        """Create from an already-parsed mapping."""
        name = data.get("dependency_name", data.get("name"))
        if not name:
            raise ValueError("dependency specification is missing a name")

        import_name = data.get("import_name")
        if not import_name:
            raise ValueError(f"dependency {name!r} is missing an import_name")

        constraint_data = data.get("constraint", data)
        if not isinstance(constraint_data, dict):
            raise ValueError(f"dependency {name!r} has a malformed constraint")

        return cls(
            dependency_name=str(name),
            import_name=str(import_name),
            constraint=constraint_from_dict(constraint_data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dependency_name": self.dependency_name,
            "import_name": self.import_name,
            "constraint": constraint_to_dict(self.constraint),
        }
