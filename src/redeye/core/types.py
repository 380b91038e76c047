"""Core data contracts: monitor/event enumerations, configuration root, and events.

All models serialize with camelCase keys (``isEnabled``,
``monitorSettings``, ``eventType`` …) because that is the shape clients
and the persisted ``config.json`` use.  Python code uses the snake_case
attribute names; both spellings are accepted on validation.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import IntEnum, StrEnum
from typing import Annotated, Any, Final

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictBool
from pydantic.alias_generators import to_camel

from redeye.core.defaults import CONFIG_SCHEMA_VERSION
from redeye.core.jsonvalue import TypedValue


class MonitorType(StrEnum):
    """Event producers governed by configuration.

    Member values are the keys of ``monitorSettings`` on disk.
    Do NOT rename or remove members without a schema version bump.
    """

    hotkeyManager = "hotkeyManager"
    inputMonitorManager = "inputMonitorManager"
    appActivationMonitor = "appActivationMonitor"
    fsEventMonitorManager = "fsEventMonitorManager"
    keyboardMonitorManager = "keyboardMonitorManager"


class EventType(StrEnum):
    """Kinds of events broadcast to clients."""

    textSelection = "textSelection"
    applicationActivated = "applicationActivated"
    browserNavigation = "browserNavigation"
    fileSystemEvent = "fileSystemEvent"
    keyboardEvent = "keyboardEvent"


TRACE: Final[int] = logging.DEBUG - 5


class LogLevel(IntEnum):
    """Configured verbosity, integer-coded on disk (0 = least verbose)."""

    fault = 0
    error = 1
    warning = 2
    info = 3
    debug = 4
    trace = 5

    def to_logging_level(self) -> int:
        return _LOGGING_LEVELS[self]


_LOGGING_LEVELS: Final[dict[LogLevel, int]] = {
    LogLevel.fault: logging.CRITICAL,
    LogLevel.error: logging.ERROR,
    LogLevel.warning: logging.WARNING,
    LogLevel.info: logging.INFO,
    LogLevel.debug: logging.DEBUG,
    LogLevel.trace: TRACE,
}


def _strict_log_level(value: Any) -> Any:
    # bool is an int subclass; strings and floats are not level codes
    if value is None or isinstance(value, LogLevel):
        return value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"logLevel must be an integer 0-5, got {type(value).__name__}")
    return LogLevel(value)


StrictLogLevel = Annotated[LogLevel, BeforeValidator(_strict_log_level)]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class MonitorSpecificConfig(_WireModel):
    """Enable flag plus free-form parameters for one monitor.

    ``parameters`` is intentionally untyped: each monitor owns the schema
    of its own parameters and validates them when applying configuration.
    """

    is_enabled: StrictBool = Field(description="Whether the monitor should run.")
    parameters: dict[str, TypedValue] | None = Field(
        default=None, description="Monitor-specific parameters."
    )


class GeneralAppSettings(_WireModel):
    """Global toggles that are not tied to a single monitor."""

    show_plugin_panel_on_hotkey_capture: StrictBool = Field(
        default=False,
        description="Show the plugin panel after a successful hotkey text capture.",
    )
    log_level: StrictLogLevel | None = Field(
        default=None,
        description="Application log verbosity; null keeps the process default.",
    )


class ConfigurationRoot(_WireModel):
    """Versioned aggregate of every runtime setting."""

    schema_version: str = Field(description="Config schema version, e.g. '1.0'.")
    monitor_settings: dict[MonitorType, MonitorSpecificConfig] = Field(
        description="Per-monitor settings keyed by MonitorType value."
    )
    general_settings: GeneralAppSettings = Field(default_factory=GeneralAppSettings)

    def to_wire(self) -> dict[str, object]:
        """Plain JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Event(_WireModel):
    """A captured activity event.  Immutable once constructed."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: EventType
    source_application_name: str | None = None
    source_bundle_identifier: str | None = None
    context_text: str | None = None
    metadata: dict[str, str] | None = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# Defaults and static metadata
# ---------------------------------------------------------------------------

_DEFAULT_ENABLED: Final[dict[MonitorType, bool]] = {
    MonitorType.hotkeyManager: True,
    MonitorType.inputMonitorManager: False,
    MonitorType.appActivationMonitor: False,
    MonitorType.fsEventMonitorManager: False,
    MonitorType.keyboardMonitorManager: True,
}

# Empty ``paths`` means "let the filesystem monitor use its built-in locations".
_DEFAULT_PARAMETERS: Final[dict[MonitorType, dict[str, object]]] = {
    MonitorType.appActivationMonitor: {"enableBrowserURLCapture": False},
    MonitorType.fsEventMonitorManager: {"paths": []},
}

MONITOR_PARAMETER_DESCRIPTIONS: Final[dict[MonitorType, dict[str, str]]] = {
    MonitorType.fsEventMonitorManager: {
        "paths": '[String] (e.g., ["~/Documents", "/tmp"])',
    },
    MonitorType.appActivationMonitor: {
        "enableBrowserURLCapture": "Bool (browser URL capture on activation)",
    },
    MonitorType.keyboardMonitorManager: {
        "debounceInterval": "Double (seconds)",
    },
}

GENERAL_SETTINGS_FIELDS: Final[tuple[str, ...]] = (
    "showPluginPanelOnHotkeyCapture: Bool",
    "logLevel: Int? (0=fault, 1=error, 2=warning, 3=info, 4=debug, 5=trace)",
)


def default_monitor_config(monitor_type: MonitorType) -> MonitorSpecificConfig:
    params = _DEFAULT_PARAMETERS.get(monitor_type)
    return MonitorSpecificConfig(
        is_enabled=_DEFAULT_ENABLED[monitor_type],
        parameters=TypedValue.decode_mapping(params),
    )


def default_config() -> ConfigurationRoot:
    """Compiled-in configuration with an entry for every :class:`MonitorType`."""
    return ConfigurationRoot(
        schema_version=CONFIG_SCHEMA_VERSION,
        monitor_settings={mt: default_monitor_config(mt) for mt in MonitorType},
        general_settings=GeneralAppSettings(),
    )
