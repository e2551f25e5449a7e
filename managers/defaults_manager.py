"""Defaults management for cleanup options"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from managers.duplicate_resolver import KeepStrategy

logger = logging.getLogger("MCP_Server")

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "asset-cleanup-mcp"
CONFIG_FILE = CONFIG_DIR / "config.json"

MODES = ("preview", "junk", "low_quality", "duplicates")

# Environment variable -> option it overrides in every mode that has it
ENV_OPTIONS = {
    "ASSET_CLEANUP_DRY_RUN": "dryRun",
    "ASSET_CLEANUP_QUALITY_THRESHOLD": "qualityThreshold",
    "ASSET_CLEANUP_BATCH_SIZE": "batchSize",
}

BOOL_OPTIONS = {"dryRun", "excludeJunk", "includeJunk", "includeLowQuality", "includeDuplicates"}
# Option -> smallest accepted value
INT_OPTIONS = {"maxDeletions": 0, "qualityThreshold": 0, "batchSize": 1, "maxPreview": 1}
STR_OPTIONS = {"keepStrategy"}

HARDCODED_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "preview": {
        "includeJunk": True,
        "includeLowQuality": True,
        "includeDuplicates": True,
        "qualityThreshold": 30,
        "maxPreview": 50,
    },
    "junk": {
        "dryRun": False,
        "maxDeletions": 1000,
        "batchSize": 50,
    },
    "low_quality": {
        "dryRun": False,
        "qualityThreshold": 30,
        "maxDeletions": 500,
        "excludeJunk": True,
        "batchSize": 50,
    },
    "duplicates": {
        "dryRun": False,
        "keepStrategy": KeepStrategy.HIGHEST_QUALITY.value,
        "maxDeletions": 300,
        "batchSize": 50,
    },
}


def coerce_option(key: str, value: Any) -> Any:
    """Coerce a raw option value (possibly a string from JSON-RPC or env) to its type"""
    if key in BOOL_OPTIONS:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "y", "on"}:
                return True
            if lowered in {"0", "false", "no", "n", "off", ""}:
                return False
            raise ValueError(f"Option '{key}' expects a boolean, got {value!r}")
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Option '{key}' expects a boolean, got {value!r}")

    if key in INT_OPTIONS:
        if isinstance(value, bool):
            raise ValueError(f"Option '{key}' expects an integer, got {value!r}")
        try:
            number = int(value.strip()) if isinstance(value, str) else int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Option '{key}' expects an integer, got {value!r}")
        if number < INT_OPTIONS[key]:
            raise ValueError(f"Option '{key}' must be >= {INT_OPTIONS[key]}, got {number}")
        return number

    if key in STR_OPTIONS:
        return str(value)

    return value


class DefaultsManager:
    """Manages cleanup option defaults with precedence: per-call > runtime > config > env > hardcoded"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ
        self._runtime_defaults: Dict[str, Dict[str, Any]] = {mode: {} for mode in MODES}
        self._config_defaults = self._load_config_defaults()
        self._hardcoded_defaults = HARDCODED_DEFAULTS

    def _load_config_defaults(self) -> Dict[str, Dict[str, Any]]:
        """Load defaults from config file"""
        defaults: Dict[str, Dict[str, Any]] = {mode: {} for mode in MODES}
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE, "r", encoding="utf-8") as f:
                    config = json.load(f)
                for mode in MODES:
                    section = config.get("defaults", {}).get(mode, {})
                    if isinstance(section, dict):
                        defaults[mode] = section
            except (json.JSONDecodeError, IOError, AttributeError) as e:
                logger.warning(f"Failed to load config file {CONFIG_FILE}: {e}")
        return defaults

    def _get_env_defaults(self) -> Dict[str, Dict[str, Any]]:
        """Load defaults from environment variables"""
        environ = os.environ if self._environ is None else self._environ
        defaults: Dict[str, Dict[str, Any]] = {mode: {} for mode in MODES}
        for env_name, option in ENV_OPTIONS.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            try:
                value = coerce_option(option, raw)
            except ValueError as e:
                logger.warning(f"Ignoring {env_name}: {e}")
                continue
            for mode in MODES:
                if option in self._hardcoded_defaults[mode]:
                    defaults[mode][option] = value
        return defaults

    def _check_mode(self, mode: str):
        if mode not in MODES:
            raise ValueError(f"Invalid mode: {mode}. Must be one of {', '.join(MODES)}")

    def get_default(self, mode: str, key: str, provided_value: Any = None) -> Any:
        """Get default value with precedence: provided > runtime > config > env > hardcoded"""
        self._check_mode(mode)
        if provided_value is not None:
            return provided_value

        if key in self._runtime_defaults[mode]:
            return self._runtime_defaults[mode][key]

        if key in self._config_defaults[mode]:
            return self._config_defaults[mode][key]

        env_defaults = self._get_env_defaults()
        if key in env_defaults[mode]:
            return env_defaults[mode][key]

        return self._hardcoded_defaults[mode].get(key)

    def resolve_options(self, mode: str, provided: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Merge per-call options over the effective defaults and coerce their types.

        Unknown option names are ignored; invalid values raise ValueError.
        """
        self._check_mode(mode)
        provided = provided or {}
        options = {}
        for key in self._hardcoded_defaults[mode]:
            value = self.get_default(mode, key, provided.get(key))
            options[key] = coerce_option(key, value)
        return options

    def get_all_defaults(self) -> Dict[str, Dict[str, Any]]:
        """Get all effective defaults (merged from all sources)"""
        env_defaults = self._get_env_defaults()
        result = {}
        for mode in MODES:
            # Start with hardcoded
            result[mode] = dict(self._hardcoded_defaults[mode])
            # Override with env
            result[mode].update(env_defaults[mode])
            # Override with config
            result[mode].update(self._config_defaults[mode])
            # Override with runtime (highest)
            result[mode].update(self._runtime_defaults[mode])
        return result

    def _validate(self, mode: str, defaults: Mapping[str, Any]) -> Dict[str, Any]:
        errors = []
        validated = {}
        for key, value in defaults.items():
            if key not in self._hardcoded_defaults[mode]:
                errors.append(f"Unknown option '{key}' for mode '{mode}'")
                continue
            try:
                validated[key] = coerce_option(key, value)
            except ValueError as e:
                errors.append(str(e))
                continue
            if key == "keepStrategy" and validated[key] not in {s.value for s in KeepStrategy}:
                errors.append(
                    f"Unknown keep strategy '{value}'. "
                    f"Available: {', '.join(s.value for s in KeepStrategy)}"
                )
        if errors:
            return {"errors": errors}
        return {"validated": validated}

    def set_defaults(self, mode: str, defaults: Mapping[str, Any]) -> Dict[str, Any]:
        """Set runtime defaults for a mode. Returns validation errors if any."""
        if mode not in MODES:
            return {"error": f"Invalid mode: {mode}. Must be one of {', '.join(MODES)}"}

        checked = self._validate(mode, defaults)
        if "errors" in checked:
            return checked

        self._runtime_defaults[mode].update(checked["validated"])
        logger.info(f"Updated runtime defaults for {mode}: {checked['validated']}")
        return {"success": True, "updated": checked["validated"]}

    def persist_defaults(self, mode: str, defaults: Mapping[str, Any]) -> Dict[str, Any]:
        """Persist defaults to config file"""
        if mode not in MODES:
            return {"error": f"Invalid mode: {mode}. Must be one of {', '.join(MODES)}"}
        checked = self._validate(mode, defaults)
        if "errors" in checked:
            return checked

        # Ensure config directory exists
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        # Load existing config
        config: Dict[str, Any] = {}
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE, "r", encoding="utf-8") as f:
                    config = json.load(f)
            except (json.JSONDecodeError, IOError):
                config = {}

        config.setdefault("defaults", {}).setdefault(mode, {}).update(checked["validated"])

        # Save config
        try:
            with open(CONFIG_FILE, "w", encoding="utf-8") as f:
                json.dump(config, f, indent=2)
            # Reload config defaults
            self._config_defaults = self._load_config_defaults()
            return {"success": True, "persisted": checked["validated"]}
        except IOError as e:
            return {"error": f"Failed to write config file: {e}"}
