"""Host bridge routing transport messages to an editor session."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from ..editor.formatting import (
    FormatCommand,
    FormattingOptions,
    TextFormatResult,
    command_from_shortcut,
    is_format_command,
)
from ..editor.session import EDIT_DEBOUNCE_SECONDS, EditorSession, ScrollHost
from .messages import (
    HOST_MESSAGES,
    Message,
    MessageType,
    blur_message,
    edit_message,
    focus_message,
    get_settings_message,
    link_input_message,
    open_external_message,
    open_file_message,
    ready_message,
    save_image_message,
    show_error_message,
)
from .settings import EditorSettings

LOGGER = logging.getLogger(__name__)

Post = Callable[[Message], Any]


class HostBridge:
    """Controller between the host process and one :class:`EditorSession`.

    ``post`` delivers core-to-host messages. The session is created by the
    first ``init`` message unless one is supplied up front.
    """

    def __init__(
        self,
        post: Post,
        *,
        session: EditorSession | None = None,
        edit_delay: float = EDIT_DEBOUNCE_SECONDS,
        scroll_host: ScrollHost | None = None,
    ) -> None:
        self._post = post
        self._edit_delay = edit_delay
        self._scroll_host = scroll_host
        self._awaiting_link = False
        self.session: Optional[EditorSession] = None
        if session is not None:
            self._attach(session)

    def start(self) -> None:
        """Announce readiness so the host sends ``init``."""

        self._post(ready_message())

    # ------------------------------------------------------------------
    # Host -> core
    # ------------------------------------------------------------------
    def handle(self, message: Message | Mapping[str, Any]) -> bool:
        """Route one host message; returns ``True`` when it was acted on."""

        if not isinstance(message, Message):
            try:
                message = Message.from_dict(message)
            except ValueError as exc:
                LOGGER.warning("Ignoring host message: %s", exc)
                return False
        if message.type not in HOST_MESSAGES:
            LOGGER.warning("Ignoring %s message sent by the host", message.type.value)
            return False

        if message.type is MessageType.INIT:
            return self._on_init(message)
        if message.type is MessageType.SAVE_IMAGE_RESULT:
            return self._on_save_image_result(message)
        session = self.session
        if session is None:
            LOGGER.debug("Dropping %s message received before init", message.type.value)
            return False
        if message.type is MessageType.UPDATE:
            return session.replace_content(str(message.get("content", "")))
        if message.type is MessageType.SETTINGS:
            session.update_settings(EditorSettings.from_payload(message.get("settings")))
            return True
        if message.type is MessageType.COMMAND:
            return self.run_command(str(message.get("command", "")), message.get("args"))
        return self._on_link_input_result(message)

    def _on_init(self, message: Message) -> bool:
        settings_payload = message.get("settings")
        settings = EditorSettings.from_payload(settings_payload)
        content = str(message.get("content", ""))
        if self.session is None:
            self._attach(
                EditorSession(
                    content,
                    settings,
                    edit_delay=self._edit_delay,
                    scroll_host=self._scroll_host,
                )
            )
        else:
            self.session.update_settings(settings)
            self.session.replace_content(content)
        if settings_payload is None:
            self._post(get_settings_message())
        LOGGER.debug("Session initialised with %d characters", len(content))
        return True

    def _on_link_input_result(self, message: Message) -> bool:
        url = message.get("url")
        awaiting, self._awaiting_link = self._awaiting_link, False
        if not awaiting or not url:
            return False
        return self._format(FormatCommand.LINK, str(url))

    def _on_save_image_result(self, message: Message) -> bool:
        error = message.get("error")
        if error:
            LOGGER.warning("Host failed to save image: %s", error)
            self._post(show_error_message(f"Failed to save image: {error}"))
            return False
        LOGGER.debug("Host saved image to %s", message.get("path"))
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def run_command(self, command: str, args: Any = None) -> bool:
        if self.session is None:
            return False
        if not is_format_command(command):
            LOGGER.warning("Unknown host command %r", command)
            return False
        parsed = FormatCommand.parse(command)
        if parsed is FormatCommand.LINK and not args:
            self._awaiting_link = True
            self._post(link_input_message())
            return True
        return self._format(parsed, str(args) if args else None)

    def shortcut(self, key: str, *, primary: bool, shift: bool = False, alt: bool = False) -> bool:
        """Handle a key chord inside the editing surface."""

        if self.session is None or not self.session.settings.intercept_shortcuts:
            return False
        command = command_from_shortcut(key, primary=primary, shift=shift, alt=alt)
        if command is None:
            return False
        return self.run_command(command.value)

    def _format(self, command: FormatCommand, link_url: Optional[str]) -> bool:
        assert self.session is not None
        result = self.session.format(command, FormattingOptions(link_url=link_url))
        if isinstance(result, TextFormatResult):
            return result.changed
        return bool(result)

    # ------------------------------------------------------------------
    # Core -> host
    # ------------------------------------------------------------------
    def _attach(self, session: EditorSession) -> None:
        session.edit_sender = self._send_edit
        self.session = session

    def _send_edit(self, content: str) -> None:
        self._post(edit_message(content))

    def focus(self) -> None:
        self._post(focus_message())

    def blur(self) -> None:
        if self.session is not None:
            self.session.flush_edits()
        self._post(blur_message())

    def activate(self, pos: int) -> bool:
        """Follow the link or wiki link at ``pos``."""

        if self.session is None:
            return False
        target = self.session.link_target_at(pos)
        if target is None:
            return False
        kind, value = target
        self._post(open_external_message(value) if kind == "url" else open_file_message(value))
        return True

    def save_image(self, data: bytes, filename: str) -> None:
        self._post(save_image_message(data, filename))

    def show_error(self, text: str) -> None:
        self._post(show_error_message(text))


__all__ = ["HostBridge"]
