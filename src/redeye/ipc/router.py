"""Command router: raw client text in, one encoded response out.

Each inbound message walks a fixed pipeline and stops at the first
failure, which becomes an error response:

1. text -> UTF-8 bytes           (failure: message dropped, ``None`` returned)
2. bytes -> command envelope     (failure: error with ``commandId: null``)
3. envelope action -> Action     (failure: unknown-action error)
4. payload -> action payload     (failure: invalid-payload error naming the action)
5. dispatch to the store         (failure: store error / internal error)

Nothing raised by payload decoding or by the store escapes :meth:`CommandRouter.handle`.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from redeye.core.config import ConfigStoreError, ConfigurationStore
from redeye.core.jsonvalue import TypedValue, encode_mapping
from redeye.core.types import MonitorType
from redeye.ipc.protocol import (
    Action,
    CommandEnvelope,
    LogMessagePayload,
    MonitorTypePayload,
    ResponseEnvelope,
    SetGeneralSettingsPayload,
    SetMonitorEnabledPayload,
    SetMonitorParametersPayload,
)

logger = logging.getLogger(__name__)
client_logger = logging.getLogger("redeye.ipc.client")

ClientId = uuid.UUID | str | None
Payload = dict[str, TypedValue] | None
Handler = Callable[[str | None, Payload, ClientId], ResponseEnvelope]

_P = TypeVar("_P", bound=BaseModel)

_FALLBACK_RESPONSE_MESSAGE = "Internal error: failed to encode response"


class PayloadError(ValueError):
    """A recognised action carried a missing or malformed payload."""

    def __init__(self, action: Action, detail: str | None = None) -> None:
        if detail is None:
            message = f"Missing payload for action '{action}'"
        else:
            message = f"Invalid payload for action '{action}': {detail}"
        super().__init__(message)
        self.action = action


def _summarize_validation(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


class CommandRouter:
    """Decodes client commands and dispatches them to the configuration store.

    Args:
        store: The shared configuration store.
    """

    def __init__(self, store: ConfigurationStore) -> None:
        self._store = store
        self._handlers: dict[Action, Handler] = {
            Action.logMessageFromServer: self._log_message,
            Action.getConfig: self._get_config,
            Action.getMonitorSettings: self._get_monitor_settings,
            Action.getMonitorSetting: self._get_monitor_setting,
            Action.setMonitorEnabled: self._set_monitor_enabled,
            Action.getMonitorParameters: self._get_monitor_parameters,
            Action.setMonitorParameters: self._set_monitor_parameters,
            Action.getGeneralSettings: self._get_general_settings,
            Action.setGeneralSettings: self._set_general_settings,
            Action.getCapabilities: self._get_capabilities,
            Action.resetConfigToDefaults: self._reset_to_defaults,
        }

    # -- entry point -----------------------------------------------------------

    def handle(self, raw: str | bytes, client_id: ClientId = None) -> str | None:
        """Process one raw message and return the encoded response.

        Returns ``None`` only when *raw* cannot be turned into UTF-8 bytes;
        that single message is dropped and the connection is left alone.
        """
        data = self._to_bytes(raw, client_id)
        if data is None:
            return None
        return self._encode(self.dispatch(data, client_id))

    def dispatch(self, data: bytes, client_id: ClientId = None) -> ResponseEnvelope:
        """Decode, route and execute a command, returning the response envelope."""
        try:
            envelope = CommandEnvelope.model_validate_json(data)
        except ValidationError as exc:
            logger.error("Failed to decode command from client %s: %s", client_id, exc)
            return ResponseEnvelope.error(
                None, f"Failed to decode command: {_summarize_validation(exc)}"
            )

        cid = envelope.command_id
        try:
            action = Action(envelope.action)
        except ValueError:
            logger.error("Unknown action %r from client %s", envelope.action, client_id)
            return ResponseEnvelope.error(cid, f"Unknown action '{envelope.action}'")

        logger.info("Routing %s (id=%s) from client %s", action, cid or "N/A", client_id)
        try:
            return self._handlers[action](cid, envelope.payload, client_id)
        except PayloadError as exc:
            logger.error("Client %s: %s", client_id, exc)
            return ResponseEnvelope.error(cid, str(exc))
        except ConfigStoreError as exc:
            logger.error("Store error handling %s for client %s: %s", action, client_id, exc)
            return ResponseEnvelope.error(cid, f"Failed to process '{action}': {exc}")
        except Exception:
            logger.exception("Unexpected error handling %s for client %s", action, client_id)
            return ResponseEnvelope.error(cid, f"Internal error while handling '{action}'")

    # -- encoding helpers ------------------------------------------------------

    @staticmethod
    def _to_bytes(raw: str | bytes, client_id: ClientId) -> bytes | None:
        if isinstance(raw, (bytes, bytearray)):
            try:
                raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.error("Dropping non-UTF-8 message from client %s", client_id)
                return None
            return bytes(raw)
        try:
            return raw.encode("utf-8")
        except UnicodeEncodeError:
            logger.error("Could not encode message from client %s as UTF-8", client_id)
            return None

    @staticmethod
    def _encode(response: ResponseEnvelope) -> str:
        try:
            return response.to_json()
        except (PydanticSerializationError, ValueError, TypeError):
            logger.exception("Failed to encode response for command %s", response.command_id)
            cid = response.command_id if isinstance(response.command_id, str) else None
            return json.dumps({
                "commandId": cid,
                "status": "error",
                "message": _FALLBACK_RESPONSE_MESSAGE,
                "data": None,
            })

    # -- payload helpers -------------------------------------------------------

    @staticmethod
    def _decode_payload(action: Action, model: type[_P], payload: Payload) -> _P:
        if payload is None:
            raise PayloadError(action)
        try:
            return model.model_validate(encode_mapping(payload))
        except ValidationError as exc:
            raise PayloadError(action, _summarize_validation(exc)) from exc

    @staticmethod
    def _monitor_type(action: Action, raw: str) -> MonitorType:
        try:
            return MonitorType(raw)
        except ValueError:
            raise PayloadError(action, f"unknown monitor type '{raw}'") from None

    # -- handlers --------------------------------------------------------------

    def _log_message(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        body = self._decode_payload(Action.logMessageFromServer, LogMessagePayload, payload)
        client_logger.info("Client %s says via IPC: %s", client_id, body.message)
        return ResponseEnvelope.ack(cid, "Message logged.")

    def _get_config(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        return ResponseEnvelope.with_data(cid, self._store.get_current_config().to_wire())

    def _get_monitor_settings(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        settings = self._store.get_monitor_settings()
        return ResponseEnvelope.with_data(cid, {
            mt.value: cfg.model_dump(mode="json", by_alias=True)
            for mt, cfg in settings.items()
        })

    def _get_monitor_setting(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        action = Action.getMonitorSetting
        body = self._decode_payload(action, MonitorTypePayload, payload)
        monitor_type = self._monitor_type(action, body.monitor_type)
        setting = self._store.get_monitor_setting(monitor_type)
        if setting is None:
            return ResponseEnvelope.error(cid, f"No settings found for monitor type '{monitor_type}'")
        return ResponseEnvelope.with_data(cid, setting.model_dump(mode="json", by_alias=True))

    def _set_monitor_enabled(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        action = Action.setMonitorEnabled
        body = self._decode_payload(action, SetMonitorEnabledPayload, payload)
        monitor_type = self._monitor_type(action, body.monitor_type)
        self._store.set_monitor_enabled(monitor_type, body.is_enabled)
        return ResponseEnvelope.ack(
            cid, f"Monitor '{monitor_type}' isEnabled set to {str(body.is_enabled).lower()}."
        )

    def _get_monitor_parameters(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        action = Action.getMonitorParameters
        body = self._decode_payload(action, MonitorTypePayload, payload)
        monitor_type = self._monitor_type(action, body.monitor_type)
        setting = self._store.get_monitor_setting(monitor_type)
        if setting is None:
            return ResponseEnvelope.error(cid, f"No settings found for monitor type '{monitor_type}'")
        return ResponseEnvelope.with_data(cid, encode_mapping(setting.parameters))

    def _set_monitor_parameters(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        action = Action.setMonitorParameters
        body = self._decode_payload(action, SetMonitorParametersPayload, payload)
        monitor_type = self._monitor_type(action, body.monitor_type)
        self._store.set_monitor_parameters(monitor_type, body.parameters)
        return ResponseEnvelope.ack(cid, f"Monitor '{monitor_type}' parameters updated.")

    def _get_general_settings(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        settings = self._store.get_general_settings()
        return ResponseEnvelope.with_data(cid, settings.model_dump(mode="json", by_alias=True))

    def _set_general_settings(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        body = self._decode_payload(Action.setGeneralSettings, SetGeneralSettingsPayload, payload)
        self._store.update_general_settings(body.to_settings())
        return ResponseEnvelope.ack(cid, "General settings updated.")

    def _get_capabilities(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        data: dict[str, Any] = dict(self._store.get_capabilities())
        data["availableActions"] = [a.value for a in Action]
        return ResponseEnvelope.with_data(cid, data)

    def _reset_to_defaults(self, cid: str | None, payload: Payload, client_id: ClientId) -> ResponseEnvelope:
        self._store.reset_to_defaults()
        return ResponseEnvelope.ack(cid, "Configuration reset to defaults.")
