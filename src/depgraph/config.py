"""Runtime settings, loaded from an optional YAML file.

Lookup order for the settings file:

1. the path passed explicitly (``--config``);
2. ``$DEPGRAPH_CONFIG``;
3. ``./depgraph.yaml`` when it exists.

Example file::

    sources:
      - https://api.nuget.org/v3/index.json
      - feeds/local.yaml          # a YAML feed file (InMemorySource)
    policy: highest
    ignore_prefixes: ["System.", "Microsoft."]
    max_concurrency: 8
    allow_partial: true

Command-line flags override file values via ``Settings.merged``.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from depgraph.core.assets.resolver import DEFAULT_ASSET_EXTENSIONS
from depgraph.core.dependency.closure import DEFAULT_MAX_CONCURRENCY, DEFAULT_MAX_DEPTH
from depgraph.core.dependency.resolver import DEFAULT_MAX_ITERATIONS, ResolutionPolicy
from depgraph.core.graph.render import DEFAULT_IGNORE_PREFIXES
from depgraph.exceptions import ConfigError
from depgraph.sources.http_client import DEFAULT_TIMEOUT as DEFAULT_REQUEST_TIMEOUT
from depgraph.sources.nuget import NUGET_ORG_V3_INDEX

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DEPGRAPH_CONFIG"
DEFAULT_CONFIG_FILE = "depgraph.yaml"
DEFAULT_DISCOVERY_TIMEOUT: float = 300.0


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    Attributes:
        sources: Feed service-index URLs or YAML feed files, in priority order.
        policy: Version selection policy.
        ignore_prefixes: Package-name prefixes hidden from reports.
        max_depth: Maximum dependency chain length during discovery.
        max_concurrency: Maximum concurrent source queries.
        timeout: Seconds allowed for discovery (None disables the limit).
        request_timeout: Seconds allowed per feed request.
        allow_partial: Keep packages without compatible assets (with a
            warning) instead of failing.
        asset_extensions: File extensions that count as lib assets.
        max_iterations: Resolver round cap.
    """

    sources: tuple[str, ...] = (NUGET_ORG_V3_INDEX,)
    policy: ResolutionPolicy = ResolutionPolicy.LOWEST
    ignore_prefixes: tuple[str, ...] = DEFAULT_IGNORE_PREFIXES
    max_depth: int = DEFAULT_MAX_DEPTH
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    timeout: float | None = DEFAULT_DISCOVERY_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    allow_partial: bool = False
    asset_extensions: tuple[str, ...] = field(default=DEFAULT_ASSET_EXTENSIONS)
    max_iterations: int = DEFAULT_MAX_ITERATIONS

    def merged(self, **overrides: Any) -> Settings:
        """Return a copy with every non-None override applied.

        Raises:
            ConfigError: If an override names an unknown setting or has an
                invalid value.
        """
        values = {k: v for k, v in overrides.items() if v is not None}
        return _build(values, base=self)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Settings:
        """Build settings from the parsed YAML structure.

        Raises:
            ConfigError: On unknown keys or invalid values.
        """
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")
        return _build(data, base=cls())


def _build(values: dict[str, Any], base: Settings) -> Settings:
    known = {f.name for f in dataclasses.fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}")

    converted: dict[str, Any] = {}
    try:
        for key, value in values.items():
            if key in ("sources", "ignore_prefixes", "asset_extensions"):
                if isinstance(value, str):
                    value = [value]
                converted[key] = tuple(str(v) for v in value)
            elif key == "policy":
                converted[key] = ResolutionPolicy(str(value).lower())
            elif key in ("max_depth", "max_concurrency", "max_iterations"):
                converted[key] = int(value)
                if converted[key] < 1:
                    raise ValueError(f"{key} must be at least 1")
            elif key in ("timeout", "request_timeout"):
                converted[key] = None if value is None else float(value)
            elif key == "allow_partial":
                if not isinstance(value, bool):
                    raise ValueError("allow_partial must be true or false")
                converted[key] = value
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid setting: {exc}") from exc

    if "sources" in converted and not converted["sources"]:
        raise ConfigError("At least one source is required")
    return dataclasses.replace(base, **converted)


def find_config_file(explicit: str | Path | None = None) -> Path | None:
    """Locate the settings file to use, or None when there is none."""
    if explicit:
        return Path(explicit)
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env)
    candidate = Path.cwd() / DEFAULT_CONFIG_FILE
    return candidate if candidate.is_file() else None


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from *path* (or the default lookup) over the defaults.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    config_path = find_config_file(path)
    if config_path is None:
        return Settings()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    logger.debug("Loaded settings from %s", config_path)
    return Settings.from_mapping(data or {})
