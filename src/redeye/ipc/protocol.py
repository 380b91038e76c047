"""Wire contracts for the command/response channel.

Clients send a command envelope::

    {"commandId": "42", "action": "setMonitorEnabled",
     "payload": {"monitorType": "keyboardMonitorManager", "isEnabled": false}}

and receive exactly one response envelope::

    {"commandId": "42", "status": "success",
     "message": "Monitor 'keyboardMonitorManager' isEnabled set to false.",
     "data": null}
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from redeye.core.jsonvalue import TypedValue
from redeye.core.types import GeneralAppSettings, StrictLogLevel


class Action(StrEnum):
    """Closed set of command actions (protocol v0.4)."""

    logMessageFromServer = "logMessageFromServer"

    getConfig = "getConfig"
    getMonitorSettings = "getMonitorSettings"
    getMonitorSetting = "getMonitorSetting"
    setMonitorEnabled = "setMonitorEnabled"
    getMonitorParameters = "getMonitorParameters"
    setMonitorParameters = "setMonitorParameters"

    getGeneralSettings = "getGeneralSettings"
    setGeneralSettings = "setGeneralSettings"

    getCapabilities = "getCapabilities"
    resetConfigToDefaults = "resetConfigToDefaults"


class CommandEnvelope(BaseModel):
    """A decoded client command.  ``action`` is validated against :class:`Action` by the router."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)

    command_id: str | None = None
    action: str
    payload: dict[str, TypedValue] | None = None


class ResponseEnvelope(BaseModel):
    """The single reply to a command.  All four keys are always serialized."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    command_id: str | None = None
    status: Literal["success", "error"]
    message: str | None = None
    data: Any = None

    @classmethod
    def ack(cls, command_id: str | None, message: str) -> ResponseEnvelope:
        return cls(command_id=command_id, status="success", message=message, data=None)

    @classmethod
    def with_data(cls, command_id: str | None, data: Any) -> ResponseEnvelope:
        return cls(command_id=command_id, status="success", message=None, data=data)

    @classmethod
    def error(cls, command_id: str | None, message: str) -> ResponseEnvelope:
        return cls(command_id=command_id, status="error", message=message, data=None)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# Action payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, strict=True)


class LogMessagePayload(_Payload):
    message: str


class MonitorTypePayload(_Payload):
    monitor_type: str = Field(description="MonitorType value, e.g. 'keyboardMonitorManager'.")


class SetMonitorEnabledPayload(_Payload):
    monitor_type: str
    is_enabled: bool


class SetMonitorParametersPayload(_Payload):
    monitor_type: str
    parameters: dict[str, TypedValue] | None = None


class SetGeneralSettingsPayload(_Payload):
    show_plugin_panel_on_hotkey_capture: bool
    log_level: StrictLogLevel | None = None

    def to_settings(self) -> GeneralAppSettings:
        return GeneralAppSettings(
            show_plugin_panel_on_hotkey_capture=self.show_plugin_panel_on_hotkey_capture,
            log_level=self.log_level,
        )
