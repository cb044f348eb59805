"""Configuration loading and management for unsafe-census.

Configuration sources are merged in priority order:
    1. Defaults (defined in CensusConfig)
    2. Global config (~/.unsafe-census.toml)
    3. Project config (./unsafe-census.toml)
    4. Explicit config file (--config)
    5. Environment variables (UNSAFE_CENSUS_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(charset="ascii", max_depth=2)
    >>> config.charset
    'ascii'
    >>> config.kinds
    frozenset({<DependencyKind.NORMAL: 'normal'>})
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError, UnknownEdgeKind
from .graph.models import DependencyKind

Verbosity = Literal["quiet", "normal", "verbose"]
Charset = Literal["utf8", "ascii"]
Prefix = Literal["indent", "depth", "none"]
OutputFormat = Literal["tree", "json", "quiet"]

GLOBAL_CONFIG_NAME = ".unsafe-census.toml"
PROJECT_CONFIG_NAME = "unsafe-census.toml"
ENV_PREFIX = "UNSAFE_CENSUS_"

_CHOICES = {
    "charset": ("utf8", "ascii"),
    "prefix": ("indent", "depth", "none"),
    "output_format": ("tree", "json", "quiet"),
    "verbosity": ("quiet", "normal", "verbose"),
}


class ScanMode(str, Enum):
    """Which files of each package are scanned."""

    FULL = "full"  # every .rs file under the package root
    ENTRY_POINTS = "entry_points"  # crate roots only, for the forbid check


@dataclass(frozen=True)
class CensusConfig:
    """Configuration for an audit run.

    Attributes:
        Scanning:
            workers: Parallel scan workers (None = one per CPU)
            fail_fast: Abort on the first unreadable or unparsable file
            include_tests: Count #[test] functions and #[cfg(test)] modules
            scan_mode: Scan every file, or only entry points (forbid-only)

        Tree:
            invert: Show dependents instead of dependencies
            dependency_kinds: Edge kinds to follow ("normal", "build", "dev")
            expand_all: Repeat shared subtrees instead of marking them (*)
            max_depth: Maximum tree depth (None = unlimited)

        Output control:
            charset: Tree glyphs, "utf8" or "ascii"
            prefix: Line prefix, "indent", "depth" or "none"
            output_format: "tree", "json" or "quiet"
            verbosity: Logging verbosity level
    """

    # Scanning
    workers: Optional[int] = None
    fail_fast: bool = False
    include_tests: bool = True
    scan_mode: ScanMode = ScanMode.FULL

    # Tree
    invert: bool = False
    dependency_kinds: tuple[str, ...] = ("normal",)
    expand_all: bool = False
    max_depth: Optional[int] = None

    # Output control
    charset: Charset = "utf8"
    prefix: Prefix = "indent"
    output_format: OutputFormat = "tree"
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate and normalize configuration after initialization."""
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.max_depth is not None and self.max_depth < 0:
            raise InvalidConfigError("max_depth", self.max_depth, "must be non-negative")

        try:
            mode = ScanMode(self.scan_mode)
        except ValueError:
            raise InvalidConfigError(
                "scan_mode", self.scan_mode, "must be 'full' or 'entry_points'"
            )
        object.__setattr__(self, "scan_mode", mode)

        kinds = self.dependency_kinds
        if isinstance(kinds, str):
            kinds = [k for k in kinds.split(",") if k.strip()]
        try:
            parsed = sorted({DependencyKind.parse(k) for k in kinds}, key=lambda k: k.value)
        except UnknownEdgeKind as e:
            raise InvalidConfigError("dependency_kinds", e.kind, "must be normal, build or dev")
        if not parsed:
            raise InvalidConfigError("dependency_kinds", kinds, "must not be empty")
        object.__setattr__(self, "dependency_kinds", tuple(k.value for k in parsed))

        for key, allowed in _CHOICES.items():
            value = getattr(self, key)
            if value not in allowed:
                raise InvalidConfigError(key, value, f"must be one of {', '.join(allowed)}")

    @property
    def kinds(self) -> frozenset[DependencyKind]:
        """Dependency kinds to follow, as enum members."""
        return frozenset(DependencyKind(k) for k in self.dependency_kinds)


def load_config(config_file: Optional[Path] = None, **overrides) -> CensusConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); None values
            are ignored so unset flags do not mask file settings

    Returns:
        Validated CensusConfig instance

    Raises:
        ConfigurationError: If a config file is unreadable or has unknown keys
        InvalidConfigError: If a value is out of range
    """
    merged: dict = {}

    global_config = Path.home() / GLOBAL_CONFIG_NAME
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(
                f"Config file not found: {config_file}", details={"path": str(config_file)}
            )
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    # Boolean verbosity flags from the CLI
    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"

    merged.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(merged) - set(CensusConfig.__dataclass_fields__))
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys: {', '.join(unknown)}",
            details={"keys": ", ".join(unknown)},
        )
    return CensusConfig(**merged)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from UNSAFE_CENSUS_* environment variables.

    Supported environment variables:
        UNSAFE_CENSUS_WORKERS: int
        UNSAFE_CENSUS_FAIL_FAST: bool (true/false/1/0)
        UNSAFE_CENSUS_INCLUDE_TESTS: bool
        UNSAFE_CENSUS_SCAN_MODE: full/entry_points
        UNSAFE_CENSUS_INVERT: bool
        UNSAFE_CENSUS_DEPENDENCY_KINDS: comma-separated kinds
        UNSAFE_CENSUS_EXPAND_ALL: bool
        UNSAFE_CENSUS_MAX_DEPTH: int
        UNSAFE_CENSUS_CHARSET: utf8/ascii
        UNSAFE_CENSUS_PREFIX: indent/depth/none
        UNSAFE_CENSUS_OUTPUT_FORMAT: tree/json/quiet
        UNSAFE_CENSUS_VERBOSITY: quiet/normal/verbose

    Returns:
        Dict of field_name -> parsed_value for any UNSAFE_CENSUS_* vars found.
    """
    type_hints = get_type_hints(CensusConfig)
    result: dict[str, Any] = {}

    for field_name in CensusConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        try:
            result[field_name] = _parse_env_value(env_value, type_hints[field_name])
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        type_hint = next(t for t in args if t is not type(None))

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if getattr(type_hint, "__origin__", None) is tuple:
        return tuple(part.strip() for part in value.split(",") if part.strip())

    # str, Literal and str-valued enums are validated by CensusConfig
    return value.strip()


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return the parsed dict.

    A ``[tool.unsafe-census]`` table is used when present, so the settings
    can also live in a shared file.

    Raises:
        ConfigurationError: If the file can't be read or parsed
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        # Fallback to tomli for Python 3.9-3.10
        import tomli as tomllib  # type: ignore

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}", details={"path": str(path)})

    return data.get("tool", {}).get("unsafe-census", data)
