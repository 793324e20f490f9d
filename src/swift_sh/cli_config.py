"""
Configuration management for swift-sh.

Settings come from dataclass defaults, an optional JSON/YAML config file
and SWIFT_SH_* environment variables, applied in that order.
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

import yaml
from rich.console import Console

console = Console(stderr=True)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class BuildConfig:
    """External build tool settings."""

    tool_name: str = "swift"
    subcommand: str = "run"
    tools_version: str = "4.2"
    fallback_executable: Optional[str] = None
    which_path: str = "/usr/bin/which"

    @property
    def default_executable(self) -> str:
        return self.fallback_executable or f"/usr/bin/{self.tool_name}"


@dataclass
class CacheConfig:
    """Build unit cache settings."""

    cache_dir_name: str = "swift-sh"
    manifest_filename: str = "Package.swift"
    source_extension: str = "swift"
    atomic_writes: bool = True

    @property
    def script_filename(self) -> str:
        return f"main.{self.source_extension}"


@dataclass
class LoggingConfig:
    """Logging and error handling configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True
    enable_sensitive_data_masking: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    build: BuildConfig = field(default_factory=BuildConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if not config.build.tool_name:
        errors.append("build.tool_name must not be empty")
    elif os.sep in config.build.tool_name:
        errors.append("build.tool_name must be a bare executable name")
    if not config.build.subcommand:
        errors.append("build.subcommand must not be empty")
    if not config.build.tools_version:
        errors.append("build.tools_version must not be empty")

    if not config.cache.cache_dir_name:
        errors.append("cache.cache_dir_name must not be empty")
    if not config.cache.manifest_filename:
        errors.append("cache.manifest_filename must not be empty")
    if not config.cache.source_extension:
        errors.append("cache.source_extension must not be empty")

    if config.logging.log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"logging.log_level must be one of {', '.join(VALID_LOG_LEVELS)}"
        )

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(
            f"⚠️  Error loading config from {config_path}: {e}", style="yellow"
        )

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".swift-sh.json",
        Path.cwd() / ".swift-sh.yaml",
        Path.cwd() / ".swift-sh.yml",
        Path.home() / ".config" / "swift-sh" / "config.json",
        Path.home() / ".config" / "swift-sh" / "config.yaml",
        Path.home() / ".swift-sh.json",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Load SWIFT_SH_* environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    if tool := os.environ.get("SWIFT_SH_TOOL"):
        config.build.tool_name = tool
    if tools_version := os.environ.get("SWIFT_SH_TOOLS_VERSION"):
        config.build.tools_version = tools_version
    if which_path := os.environ.get("SWIFT_SH_WHICH"):
        config.build.which_path = which_path
    if fallback := os.environ.get("SWIFT_SH_FALLBACK_EXECUTABLE"):
        config.build.fallback_executable = fallback

    config.cache.atomic_writes = get_env_bool(
        "SWIFT_SH_ATOMIC_WRITES", config.cache.atomic_writes
    )

    if log_level := os.environ.get("SWIFT_SH_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()


def _accepted_types(field_type: Any) -> Tuple[type, ...]:
    if get_origin(field_type) is Union:
        return get_args(field_type)
    return (field_type,)


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> List[str]:
    """
    Apply configuration from dictionary to config section.

    Values whose type does not match the field are not applied.

    Returns:
        List[str]: Type errors for rejected values
    """
    if not isinstance(section_data, dict):
        return [f"{section_name} must be a mapping"]

    errors = []
    field_types = {f.name: f.type for f in fields(config)}
    for key, value in section_data.items():
        if key not in field_types:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )
            continue

        accepted = _accepted_types(field_types[key])
        if not isinstance(value, accepted):
            expected = " or ".join(
                "null" if t is type(None) else t.__name__ for t in accepted
            )
            errors.append(
                f"{section_name}.{key} must be {expected}, got {type(value).__name__}"
            )
            continue
        setattr(config, key, value)

    return errors


def apply_config_data(
    config: ComprehensiveConfig, file_config: Dict[str, Any]
) -> List[str]:
    errors = []
    for section in ("build", "cache", "logging"):
        if section in file_config:
            errors.extend(
                apply_config_section(getattr(config, section), file_config[section], section)
            )
    return errors


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()
    validation_errors = []

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if isinstance(file_config, dict):
            validation_errors.extend(apply_config_data(config, file_config))

    load_environment_overrides(config)

    validation_errors.extend(validate_config_values(config))
    if validation_errors:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in validation_errors:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")
        config = ComprehensiveConfig()

    _global_config = config
    return config


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration document."""
    return json.dumps(ComprehensiveConfig().to_dict(), indent=2)
