"""
Layered configuration loading for page-pilot.

Later layers win:
1. Defaults declared in settings.py
2. A YAML file
3. ``PAGE_PILOT__{SECTION}__{KEY}`` environment variables
4. Keyword overrides passed to ``load_config``

Example: PAGE_PILOT__SESSION__TIMEOUT_MS=10000
"""

import os
from functools import reduce
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from page_pilot.config.settings import Settings
from page_pilot.core.exceptions import ConfigurationError

ENV_PREFIX = "PAGE_PILOT"

# Points at a config file; checked before the search locations
CONFIG_ENV_VAR = "PAGE_PILOT_CONFIG"

_BOOLEAN_WORDS = {
    "true": True, "yes": True, "on": True,
    "false": False, "no": False, "off": False,
}
_NULL_WORDS = {"none", "null", ""}

_settings_instance: Settings | None = None


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge configuration layers left to right; nested sections merge key by key."""
    def merge(base: dict[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
        merged = dict(base)
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                merged[key] = merge(current, value)
            else:
                merged[key] = value
        return merged

    return reduce(merge, layers, {})


def coerce_env_value(raw: str) -> Any:
    """
    Turn an environment string into the scalar it spells.

    "1" and "0" stay numbers; only words map to booleans.
    """
    lowered = raw.strip().lower()
    if lowered in _BOOLEAN_WORDS:
        return _BOOLEAN_WORDS[lowered]
    if lowered in _NULL_WORDS:
        return None

    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def env_layer(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Collect ``{prefix}__{SECTION}__{KEY}`` variables into a nested layer.

    Names without a section part are ignored.
    """
    environ = os.environ if environ is None else environ
    marker = f"{prefix}__"
    layer: dict[str, Any] = {}

    for name, raw in environ.items():
        if not name.startswith(marker):
            continue
        *sections, key = name[len(marker):].lower().split("__")
        if not sections:
            continue

        node = layer
        for section in sections:
            node = node.setdefault(section, {})
        node[key] = coerce_env_value(raw)

    return layer


def yaml_layer(path: Path) -> dict[str, Any]:
    """
    Read one YAML configuration file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in configuration file: {e}",
            details={"path": str(path)},
        ) from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got: {type(content).__name__}",
            details={"path": str(path)},
        )
    return content


def find_config_file() -> Path | None:
    """
    Locate a configuration file when none was given explicitly.

    ``$PAGE_PILOT_CONFIG`` wins; otherwise the first existing of
    ./config.yaml, ./config/config.yaml and ~/.page_pilot/config.yaml.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    candidates = (
        Path.cwd() / "config.yaml",
        Path.cwd() / "config" / "config.yaml",
        Path.home() / ".page_pilot" / "config.yaml",
    )
    return next((path for path in candidates if path.is_file()), None)


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = ENV_PREFIX,
    **overrides: Any,
) -> Settings:
    """
    Build validated Settings from every configuration layer.

    Args:
        config_path: YAML file to read. None skips the file layer.
        env_prefix: Prefix of the environment variables to apply
        **overrides: Section mappings applied last,
            e.g. ``session={"timeout_ms": 1000}``

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist
        ConfigurationError: If the file is malformed or a value is invalid
    """
    layers: list[Mapping[str, Any]] = []
    if config_path is not None:
        layers.append(yaml_layer(Path(config_path)))
    layers.append(env_layer(env_prefix))
    layers.append(overrides)

    try:
        return Settings.model_validate(merge_layers(*layers))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e.error_count()} error(s)",
            details={
                "errors": [".".join(str(part) for part in err["loc"]) for err in e.errors()],
            },
        ) from e


def get_settings(
    config_path: Path | str | None = None,
    reload: bool = False,
) -> Settings:
    """Return the process-wide Settings, loading them on first use or on reload."""
    global _settings_instance

    if _settings_instance is None or reload:
        _settings_instance = load_config(config_path)
    return _settings_instance


def reset_settings() -> None:
    """Forget the process-wide Settings."""
    global _settings_instance
    _settings_instance = None
