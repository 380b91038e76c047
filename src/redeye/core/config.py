"""Runtime configuration store.

Owns the single live :class:`~redeye.core.types.ConfigurationRoot` and
persists it as a JSON file.  The file is created on first access with
the compiled-in defaults, and is rewritten (atomically) after every
successful mutation.

Typical location::

    ~/.config/redeye/config.json
    ~/Library/Application Support/RedEye/config.json   (macOS)

Usage::

    from redeye.core.config import ConfigurationStore
    from redeye.core.types import MonitorType

    store = ConfigurationStore(path)
    store.get_monitor_setting(MonitorType.keyboardMonitorManager)
    store.set_monitor_enabled(MonitorType.keyboardMonitorManager, False)  # persists immediately
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from redeye.core.defaults import APP_NAME, CONFIG_SCHEMA_VERSION, default_config_path
from redeye.core.jsonvalue import TypedValue, encode_mapping
from redeye.core.logging import apply_log_level
from redeye.core.store import read_json, write_json_atomic
from redeye.core.types import (
    GENERAL_SETTINGS_FIELDS,
    MONITOR_PARAMETER_DESCRIPTIONS,
    ConfigurationRoot,
    EventType,
    GeneralAppSettings,
    MonitorSpecificConfig,
    MonitorType,
    default_config,
    default_monitor_config,
)

logger = logging.getLogger(__name__)


class ConfigStoreError(Exception):
    """Base class for configuration store failures."""


class ConfigPersistenceError(ConfigStoreError):
    """Raised when the configuration could not be written to disk.

    The in-memory configuration is left exactly as it was before the
    failed call.
    """

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class UnknownMonitorTypeError(ConfigStoreError):
    """Raised when the live configuration has no entry for a monitor."""


def merge_over_defaults(raw: Any) -> ConfigurationRoot:
    """Overlay persisted data on the default skeleton and validate.

    Monitors missing from *raw* get their default entry, so adding a
    :class:`MonitorType` never yields a partially populated root.
    Unknown monitor keys are dropped.  General settings are merged
    field by field.

    Raises:
        ValueError: If *raw* is not a JSON object or fails validation
            (``pydantic.ValidationError`` is a ``ValueError``).
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a JSON object, got {type(raw).__name__}")

    merged = default_config().to_wire()
    if "schemaVersion" in raw:
        merged["schemaVersion"] = raw["schemaVersion"]

    persisted_monitors = raw.get("monitorSettings") or {}
    if not isinstance(persisted_monitors, dict):
        raise ValueError("monitorSettings must be a JSON object")
    known = {mt.value for mt in MonitorType}
    for key, entry in persisted_monitors.items():
        if key not in known:
            logger.warning("Dropping settings for unknown monitor type %r", key)
            continue
        merged["monitorSettings"][key] = entry

    persisted_general = raw.get("generalSettings") or {}
    if not isinstance(persisted_general, dict):
        raise ValueError("generalSettings must be a JSON object")
    merged["generalSettings"].update(persisted_general)

    return ConfigurationRoot.model_validate(merged)


class ConfigurationStore:
    """Thread-safe read/write access to ``config.json``.

    Every accessor and mutator holds one re-entrant lock, and persistence
    happens while that lock is held, so a reader never observes a root
    that differs from the last completed write.

    Mutators build a new root, write it, and only then swap it in.  A
    failed write raises :class:`ConfigPersistenceError` and leaves both
    the in-memory root and the file untouched.

    Args:
        path: Location of the JSON file.  Defaults to the per-user path
            from :func:`~redeye.core.defaults.default_config_path`.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path is not None else default_config_path()
        self._lock = threading.RLock()
        self._root: ConfigurationRoot = default_config()
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # -- persistence -----------------------------------------------------------

    def load(self) -> ConfigurationRoot:
        """(Re)load the configuration from disk.

        A missing, unreadable or invalid file is replaced by the defaults,
        which are written back immediately.  Never raises: a failed write
        of the defaults is logged and the defaults stay live in memory.
        """
        with self._lock:
            try:
                root = merge_over_defaults(read_json(self._path))
                logger.info(
                    "Loaded configuration from %s (schema %s)",
                    self._path, root.schema_version,
                )
            except FileNotFoundError:
                logger.info("No configuration at %s, writing defaults", self._path)
                root = self._heal()
            except (OSError, ValueError) as exc:
                logger.warning(
                    "Corrupt or unreadable config at %s (%s), using defaults",
                    self._path, exc,
                )
                root = self._heal()
            self._root = root
            apply_log_level(root.general_settings.log_level)
            return self._snapshot()

    def _heal(self) -> ConfigurationRoot:
        root = default_config()
        try:
            self._write(root)
        except ConfigPersistenceError:
            logger.error(
                "Failed to save default configuration to %s; settings will not persist",
                self._path, exc_info=True,
            )
        return root

    def _write(self, root: ConfigurationRoot) -> None:
        try:
            write_json_atomic(root.to_wire(), self._path)
        except OSError as exc:
            raise ConfigPersistenceError(
                f"Failed to write configuration file {self._path}: {exc.strerror or exc}",
                self._path,
            ) from exc

    def _commit(self, root: ConfigurationRoot) -> None:
        """Persist *root* and make it live.  Caller holds the lock."""
        self._write(root)
        self._root = root

    def save(self) -> None:
        """Explicitly persist the current in-memory configuration."""
        with self._lock:
            self._write(self._root)

    # -- reads -----------------------------------------------------------------

    def _snapshot(self) -> ConfigurationRoot:
        return self._root.model_copy(deep=True)

    def get_current_config(self) -> ConfigurationRoot:
        with self._lock:
            return self._snapshot()

    def get_monitor_setting(self, monitor_type: MonitorType) -> MonitorSpecificConfig | None:
        with self._lock:
            setting = self._root.monitor_settings.get(monitor_type)
            return setting.model_copy(deep=True) if setting is not None else None

    def get_monitor_settings(self) -> dict[MonitorType, MonitorSpecificConfig]:
        with self._lock:
            return self._snapshot().monitor_settings

    def get_general_settings(self) -> GeneralAppSettings:
        with self._lock:
            return self._root.general_settings.model_copy()

    # -- writes ----------------------------------------------------------------

    def _replace_monitor(
        self, monitor_type: MonitorType, **changes: Any
    ) -> None:
        current = self._root.monitor_settings.get(monitor_type)
        if current is None:
            raise UnknownMonitorTypeError(f"Unknown monitor type: {monitor_type}")
        settings = dict(self._root.monitor_settings)
        settings[monitor_type] = current.model_copy(update=changes)
        self._commit(self._root.model_copy(update={"monitor_settings": settings}))

    def set_monitor_enabled(self, monitor_type: MonitorType, is_enabled: bool) -> None:
        """Enable or disable one monitor and persist.

        Raises:
            TypeError: If *is_enabled* is not a ``bool``.
            UnknownMonitorTypeError: If the root has no entry for *monitor_type*.
            ConfigPersistenceError: If the write fails (nothing changes).
        """
        if not isinstance(is_enabled, bool):
            raise TypeError(f"is_enabled must be a bool, got {type(is_enabled).__name__}")
        with self._lock:
            self._replace_monitor(monitor_type, is_enabled=is_enabled)
            logger.info("Monitor %s isEnabled set to %s", monitor_type, is_enabled)

    def set_monitor_parameters(
        self,
        monitor_type: MonitorType,
        parameters: Mapping[str, Any] | None,
    ) -> None:
        """Replace all parameters of one monitor (``None`` clears them) and persist.

        Values may be plain JSON values or :class:`TypedValue` instances.

        Raises:
            TypedValueError: If *parameters* holds a non-JSON value.
            UnknownMonitorTypeError: If the root has no entry for *monitor_type*.
            ConfigPersistenceError: If the write fails (nothing changes).
        """
        decoded = TypedValue.decode_mapping(parameters)
        with self._lock:
            self._replace_monitor(monitor_type, parameters=decoded)
            logger.info(
                "Monitor %s parameters set to %s",
                monitor_type,
                encode_mapping(decoded),
            )

    def update_general_settings(self, new_settings: GeneralAppSettings) -> None:
        """Replace the general settings and persist.

        A non-null ``log_level`` is applied to the application logger once
        the write has succeeded.

        Raises:
            TypeError: If *new_settings* is not a :class:`GeneralAppSettings`.
            ConfigPersistenceError: If the write fails (nothing changes).
        """
        if not isinstance(new_settings, GeneralAppSettings):
            raise TypeError("new_settings must be a GeneralAppSettings instance")
        with self._lock:
            self._commit(self._root.model_copy(update={"general_settings": new_settings}))
            logger.info(
                "General settings updated: showPluginPanelOnHotkeyCapture=%s logLevel=%s",
                new_settings.show_plugin_panel_on_hotkey_capture,
                new_settings.log_level.name if new_settings.log_level is not None else None,
            )
            apply_log_level(new_settings.log_level)

    def reset_to_defaults(self) -> None:
        """Replace the whole configuration with the compiled-in defaults and persist."""
        with self._lock:
            root = default_config()
            self._commit(root)
            logger.info("Configuration reset to defaults")
            apply_log_level(root.general_settings.log_level)

    # -- introspection ---------------------------------------------------------

    def get_capabilities(self) -> dict[str, Any]:
        """Static description of monitors, event types and settings fields.

        Derived from compiled-in metadata only; the current settings do
        not influence the result.
        """
        monitors = []
        for mt in MonitorType:
            params = MONITOR_PARAMETER_DESCRIPTIONS.get(
                mt, {"note": "No specific parameters defined for this monitor type yet."}
            )
            monitors.append({
                "name": mt.value,
                "isEnabledByDefault": default_monitor_config(mt).is_enabled,
                "configurableParameters": dict(params),
            })
        return {
            "appName": APP_NAME,
            "configSchemaVersion": CONFIG_SCHEMA_VERSION,
            "configFileLocation": str(self._path),
            "availableEventMonitors": monitors,
            "availableEventTypes": [et.value for et in EventType],
            "generalSettingsFields": list(GENERAL_SETTINGS_FIELDS),
        }
