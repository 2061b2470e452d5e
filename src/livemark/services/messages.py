"""Messages exchanged between the editing core and its host process."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class MessageType(str, Enum):
    INIT = "init"
    UPDATE = "update"
    EDIT = "edit"
    FOCUS = "focus"
    BLUR = "blur"
    READY = "ready"
    COMMAND = "command"
    OPEN_EXTERNAL = "openExternal"
    OPEN_FILE = "openFile"
    SAVE_IMAGE = "saveImage"
    SAVE_IMAGE_RESULT = "saveImageResult"
    SHOW_ERROR = "showError"
    LINK_INPUT = "linkInput"
    LINK_INPUT_RESULT = "linkInputResult"
    GET_SETTINGS = "getSettings"
    SETTINGS = "settings"


HOST_MESSAGES = frozenset(
    {
        MessageType.INIT,
        MessageType.UPDATE,
        MessageType.COMMAND,
        MessageType.SAVE_IMAGE_RESULT,
        MessageType.LINK_INPUT_RESULT,
        MessageType.SETTINGS,
    }
)


@dataclass(slots=True, frozen=True)
class Message:
    """A typed message with its JSON-compatible payload fields."""

    type: MessageType
    payload: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, **self.payload}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        """Parse a transport payload; raises ``ValueError`` for unknown types."""

        raw_type = data.get("type")
        try:
            message_type = MessageType(raw_type)
        except ValueError as exc:
            raise ValueError(f"Unknown message type: {raw_type!r}") from exc
        return cls(message_type, {key: value for key, value in data.items() if key != "type"})


def edit_message(content: str) -> Message:
    return Message(MessageType.EDIT, {"content": content})


def focus_message() -> Message:
    return Message(MessageType.FOCUS)


def blur_message() -> Message:
    return Message(MessageType.BLUR)


def ready_message() -> Message:
    return Message(MessageType.READY)


def open_external_message(url: str) -> Message:
    return Message(MessageType.OPEN_EXTERNAL, {"url": url})


def open_file_message(path: str) -> Message:
    return Message(MessageType.OPEN_FILE, {"path": path})


def save_image_message(data: bytes, filename: str) -> Message:
    return Message(MessageType.SAVE_IMAGE, {"data": list(data), "filename": filename})


def show_error_message(message: str) -> Message:
    return Message(MessageType.SHOW_ERROR, {"message": message})


def link_input_message() -> Message:
    return Message(MessageType.LINK_INPUT)


def get_settings_message() -> Message:
    return Message(MessageType.GET_SETTINGS)


def command_message(command: str, args: Optional[str] = None) -> Message:
    payload: Dict[str, Any] = {"command": command}
    if args is not None:
        payload["args"] = args
    return Message(MessageType.COMMAND, payload)


__all__ = [
    "HOST_MESSAGES",
    "Message",
    "MessageType",
    "blur_message",
    "command_message",
    "edit_message",
    "focus_message",
    "get_settings_message",
    "link_input_message",
    "open_external_message",
    "open_file_message",
    "ready_message",
    "save_image_message",
    "show_error_message",
]
