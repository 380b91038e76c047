"""Tests for redeye.core.types: enums, wire models and defaults."""

from __future__ import annotations

import json
import logging
import uuid

import pytest
from pydantic import ValidationError

from redeye.core.defaults import CONFIG_SCHEMA_VERSION
from redeye.core.types import (
    TRACE,
    ConfigurationRoot,
    Event,
    EventType,
    GeneralAppSettings,
    LogLevel,
    MonitorSpecificConfig,
    MonitorType,
    default_config,
    default_monitor_config,
)


class TestDefaults:
    def test_every_monitor_type_has_an_entry(self) -> None:
        cfg = default_config()
        assert set(cfg.monitor_settings) == set(MonitorType)

    def test_schema_version(self) -> None:
        assert default_config().schema_version == CONFIG_SCHEMA_VERSION

    def test_enabled_by_default(self) -> None:
        enabled = {mt for mt, s in default_config().monitor_settings.items() if s.is_enabled}
        assert enabled == {MonitorType.hotkeyManager, MonitorType.keyboardMonitorManager}

    def test_default_parameters(self) -> None:
        fs = default_monitor_config(MonitorType.fsEventMonitorManager)
        assert fs.parameters["paths"].encode() == []
        app = default_monitor_config(MonitorType.appActivationMonitor)
        assert app.parameters["enableBrowserURLCapture"].as_bool() is False
        assert default_monitor_config(MonitorType.hotkeyManager).parameters is None

    def test_general_defaults(self) -> None:
        general = default_config().general_settings
        assert general.show_plugin_panel_on_hotkey_capture is False
        assert general.log_level is None


class TestWireShape:
    def test_to_wire_uses_camel_case(self) -> None:
        wire = default_config().to_wire()
        assert set(wire) == {"schemaVersion", "monitorSettings", "generalSettings"}
        assert wire["monitorSettings"]["keyboardMonitorManager"] == {"isEnabled": True, "parameters": None}
        assert wire["generalSettings"] == {"showPluginPanelOnHotkeyCapture": False, "logLevel": None}

    def test_wire_round_trip(self) -> None:
        wire = default_config().to_wire()
        assert ConfigurationRoot.model_validate(wire) == default_config()

    def test_snake_case_names_accepted(self) -> None:
        cfg = MonitorSpecificConfig(is_enabled=False)
        assert cfg.is_enabled is False

    def test_is_enabled_is_strict(self) -> None:
        with pytest.raises(ValidationError):
            MonitorSpecificConfig.model_validate({"isEnabled": "true"})
        with pytest.raises(ValidationError):
            MonitorSpecificConfig.model_validate({"isEnabled": 1})

    def test_log_level_is_integer_coded(self) -> None:
        general = GeneralAppSettings.model_validate({"logLevel": 4})
        assert general.log_level is LogLevel.debug
        assert general.model_dump(mode="json", by_alias=True)["logLevel"] == 4

    @pytest.mark.parametrize("raw", [True, False, "4", 2.0, 9, -1])
    def test_log_level_rejects_non_integer_codes(self, raw) -> None:
        with pytest.raises(ValidationError):
            GeneralAppSettings.model_validate({"logLevel": raw})

    def test_models_are_frozen(self) -> None:
        cfg = default_monitor_config(MonitorType.keyboardMonitorManager)
        with pytest.raises(ValidationError):
            cfg.is_enabled = False  # type: ignore[misc]


class TestLogLevel:
    @pytest.mark.parametrize(
        "level, expected",
        [
            (LogLevel.fault, logging.CRITICAL),
            (LogLevel.error, logging.ERROR),
            (LogLevel.warning, logging.WARNING),
            (LogLevel.info, logging.INFO),
            (LogLevel.debug, logging.DEBUG),
            (LogLevel.trace, TRACE),
        ],
    )
    def test_maps_to_logging_levels(self, level, expected) -> None:
        assert level.to_logging_level() == expected

    def test_trace_is_below_debug(self) -> None:
        assert TRACE < logging.DEBUG


class TestEvent:
    def test_defaults_fill_identity_and_time(self) -> None:
        event = Event(event_type=EventType.keyboardEvent)
        assert isinstance(event.id, uuid.UUID)
        assert event.timestamp.tzinfo is not None

    def test_to_json_is_camel_case(self) -> None:
        event = Event(
            event_type=EventType.textSelection,
            source_application_name="Editor",
            context_text="hello",
            metadata={"selection_method": "accessibility"},
        )
        data = json.loads(event.to_json())
        assert data["eventType"] == "textSelection"
        assert data["sourceApplicationName"] == "Editor"
        assert data["contextText"] == "hello"
        assert data["metadata"] == {"selection_method": "accessibility"}
        assert data["id"] == str(event.id)

    def test_unknown_event_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Event.model_validate({"eventType": "mouseWiggle"})
