import json
from pathlib import Path
from typing import Any, List

import yaml

from .dependency import ImportSpecification
from .error_handling import ErrorCategory, get_error_handler

SUPPORTED_EXTENSIONS = [".json", ".yaml", ".yml"]


def _validate_file_path(file_path: str) -> Path:
    """
    Validate a dependency document path.

    Raises:
        ValueError: If path is missing, not a file or of an unsupported type
    """
    if not file_path or not isinstance(file_path, str):
        raise ValueError("File path must be a non-empty string")

    path = Path(file_path)
    if not path.exists():
        raise ValueError(f"File does not exist: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {path.suffix}")

    return path


def _load_document(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Malformed dependency document {path.name}: {e}")
    except UnicodeDecodeError:
        raise ValueError("File contains invalid UTF-8 characters")
    except OSError as e:
        raise ValueError(f"Cannot read file: {e}")


def parse_dependency_specs(document: Any) -> List[ImportSpecification]:
    """
    Build dependency specifications from an already-parsed document.

    The document is a list of specs or a mapping with a ``dependencies``
    list. Order is preserved.

    Raises:
        ValueError: If the document or one of its entries is malformed
    """
    if document is None:
        return []
    if isinstance(document, dict):
        document = document.get("dependencies") or []
    if not isinstance(document, list):
        raise ValueError("Dependency document must be a list of dependencies")

    specs = []
    for index, entry in enumerate(document):
        if not isinstance(entry, dict):
            raise ValueError(f"Dependency #{index} must be a mapping")
        try:
            specs.append(ImportSpecification.from_dict(entry))
        except ValueError as e:
            raise ValueError(f"Dependency #{index}: {e}")
    return specs


def load_dependency_file(file_path: str) -> List[ImportSpecification]:
    """
    Load dependency specifications from a JSON or YAML document.

    Args:
        file_path: Path to the document

    Returns:
        List[ImportSpecification]: Specifications in document order

    Raises:
        ValueError: If the file is missing, unsupported or malformed
    """
    try:
        path = _validate_file_path(file_path)
        return parse_dependency_specs(_load_document(path))
    except ValueError as e:
        get_error_handler().warning(
            ErrorCategory.INPUT,
            f"Failed to load dependency document: {e}",
            "parsers",
            "load_dependency_file",
            details={"file_path": Path(str(file_path)).name},
            suggestions=["Check the document against `swift-sh info`"],
        )
        raise
