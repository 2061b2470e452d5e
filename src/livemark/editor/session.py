"""Editor session: the document, its tree, the selection and the overlay set."""

from __future__ import annotations

import asyncio
import logging
import re
import weakref
from typing import Any, Callable, Iterable, Optional, Protocol

from ..core.changes import ChangeSet, EditDescriptor, LivemarkError
from ..core.ranges import SelectionSet
from ..decorations.builder import DecorationContext, build_decorations
from ..decorations.overlays import Overlay, OverlayKind, OverlaySet, find_conflicts
from ..decorations.tables import TableEditor, TableWidget
from ..decorations.widgets import CheckboxWidget
from ..services.settings import EditorSettings, formatting_preferences, normalize_settings
from ..utils.debounce import Debouncer
from .blocks import LineIndex
from .document_model import DocumentState, Transaction
from .formatting import FormatCommand, FormattingOptions, FormattingPreferences, TextFormatResult
from .list_commands import indent_list_items, outdent_list_items, smart_enter
from .multi_range import apply_formatting_to_session
from .syntax.markdown import document_stats, parse_markdown
from .syntax.tree import SyntaxTree

LOGGER = logging.getLogger(__name__)

_HEADING_PREFIX = re.compile(r"^(#{1,6})\s")
EDIT_DEBOUNCE_SECONDS = 0.1
EXTERNAL_EVENT = "external"


class ScrollHost(Protocol):
    """Scroll state of the rendering surface."""

    def scroll_offsets(self) -> tuple[float, float]:
        ...

    def restore_scroll(self, top: float, left: float) -> None:
        ...


Listener = Callable[["EditorSession", Transaction], None]
Parser = Callable[[str], SyntaxTree]


class EditorSession:
    """Serializes transactions against one document and keeps overlays in step.

    Every transaction re-parses the document (when it changed) and rebuilds
    the overlays, except widget-originated transactions, whose overlays are
    position-mapped so live widgets keep their identity. Document changes
    are forwarded to ``edit_sender`` after a short debounce.
    """

    SCROLL_TOLERANCE = 2.0

    def __init__(
        self,
        text: str = "",
        settings: EditorSettings | None = None,
        *,
        parser: Parser = parse_markdown,
        selection: SelectionSet | None = None,
        edit_sender: Optional[Callable[[str], Any]] = None,
        edit_delay: float = EDIT_DEBOUNCE_SECONDS,
        scroll_host: ScrollHost | None = None,
    ) -> None:
        self._settings = normalize_settings(settings)
        self._parser = parser
        self._state = DocumentState(text=text, selection=selection or SelectionSet.single(0))
        self._tree = parser(text)
        self._listeners: list[Listener] = []
        self.edit_sender = edit_sender
        self._edits = Debouncer(self._send_edit, edit_delay)
        self.scroll_host = scroll_host
        self.active_table: Optional[TableEditor] = None
        self._table_editors: "weakref.WeakSet[TableEditor]" = weakref.WeakSet()
        self._overlays = self._rebuild()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> DocumentState:
        return self._state

    @property
    def text(self) -> str:
        return self._state.text

    @property
    def selection(self) -> SelectionSet:
        return self._state.selection

    @property
    def tree(self) -> SyntaxTree:
        return self._tree

    @property
    def overlays(self) -> OverlaySet:
        return self._overlays

    @property
    def settings(self) -> EditorSettings:
        return self._settings

    @property
    def formatting_preferences(self) -> FormattingPreferences:
        return formatting_preferences(self._settings)

    @property
    def context(self) -> DecorationContext:
        return DecorationContext(
            formatting_preferences=self.formatting_preferences,
            intercept_shortcuts=self._settings.intercept_shortcuts,
        )

    def update_settings(self, settings: EditorSettings) -> None:
        self._settings = normalize_settings(settings)
        self._overlays = self._rebuild()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def stats(self) -> dict[str, Any]:
        return document_stats(self.text)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def dispatch(self, transaction: Transaction, *, preserve_scroll: bool = False) -> bool:
        """Apply ``transaction``; returns ``False`` when it was refused."""

        scroll_before = None
        if preserve_scroll and self.scroll_host is not None:
            scroll_before = self.scroll_host.scroll_offsets()
        try:
            new_state = self._state.apply(transaction)
        except LivemarkError as exc:
            LOGGER.error("Refusing transaction: %s (%s)", exc, exc.details())
            return False

        doc_changed = new_state.text != self._state.text
        self._state = new_state
        if doc_changed:
            self._tree = self._parser(new_state.text)
            if transaction.changes is not None:
                self._remap_table_editors(transaction.changes)
        if transaction.origin_is_widget and transaction.changes is not None:
            self._overlays = self._overlays.map(transaction.changes)
            LOGGER.debug("Mapped %d overlays through widget edit", len(self._overlays))
        else:
            self._overlays = self._rebuild()

        if doc_changed and not transaction.is_user_event(EXTERNAL_EVENT):
            self._edits.call(new_state.text)
        for listener in list(self._listeners):
            listener(self, transaction)
        if not doc_changed and transaction.is_user_event("select.pointer"):
            self._nudge_past_heading_prefix()
        if scroll_before is not None:
            self._schedule_scroll_check(*scroll_before)
        return True

    def _remap_table_editors(self, changes: ChangeSet) -> None:
        for editor in list(self._table_editors):
            if editor.remap(changes):
                continue
            LOGGER.debug("Detaching table editor at %d-%d", editor.model.source_from, editor.model.source_to)
            editor.detach()
            self._table_editors.discard(editor)
            if self.active_table is editor:
                self.active_table = None

    def _rebuild(self) -> OverlaySet:
        overlays = build_decorations(self.text, self._tree, self.selection, context=self.context)
        if LOGGER.isEnabledFor(logging.DEBUG):
            conflicts = find_conflicts(overlays)
            if conflicts:
                LOGGER.debug("Overlay conflicts detected: %s", [(a.to_dict(), b.to_dict()) for a, b in conflicts])
        return overlays

    def _send_edit(self, content: str) -> None:
        if self.edit_sender is not None:
            self.edit_sender(content)

    def flush_edits(self) -> None:
        self._edits.flush()

    def _schedule_scroll_check(self, top: float, left: float) -> None:
        host = self.scroll_host
        if host is None:
            return

        def check() -> None:
            now_top, now_left = host.scroll_offsets()
            if abs(now_top - top) > self.SCROLL_TOLERANCE or abs(now_left - left) > self.SCROLL_TOLERANCE:
                host.restore_scroll(top, left)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            check()
            return
        loop.call_soon(check)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select(self, ranges: Iterable[Any], *, main_index: int = 0, pointer: bool = False) -> bool:
        selection = SelectionSet.of(ranges, main_index).clamp(len(self.text))
        return self.dispatch(Transaction(selection=selection, user_event="select.pointer" if pointer else "select"))

    def _nudge_past_heading_prefix(self) -> None:
        main = self.selection.main
        if not main.is_caret:
            return
        line = LineIndex(self.text).line_at(main.start)
        match = _HEADING_PREFIX.match(line.text)
        if match is None:
            return
        prefix_end = line.start + len(match.group(0))
        if main.start < prefix_end:
            self.dispatch(Transaction(selection=SelectionSet.single(prefix_end), user_event="select.adjust"))

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def replace_content(self, content: str) -> bool:
        """Replace the whole document with host-provided ``content``."""

        if content == self.text:
            return False
        changes = ChangeSet.of([EditDescriptor(0, len(self.text), content)], len(self.text))
        return self.dispatch(Transaction(changes=changes, user_event=EXTERNAL_EVENT))

    def format(
        self,
        command: FormatCommand | str,
        options: FormattingOptions | None = None,
    ) -> bool | TextFormatResult:
        """Run a format command in the focused table cell, or across the selection."""

        if self.active_table is not None and self.active_table.focus is not None:
            result = self.active_table.apply_format(command, self.formatting_preferences, options)
            if result is not None:
                return result
        return apply_formatting_to_session(self, command, self.formatting_preferences, options)

    def indent(self) -> bool:
        return self._run(indent_list_items(self._state, self._settings.tab_size))

    def outdent(self) -> bool:
        return self._run(outdent_list_items(self._state, self._settings.tab_size))

    def enter(self) -> bool:
        return self._run(smart_enter(self._state))

    def _run(self, transaction: Transaction | None) -> bool:
        return transaction is not None and self.dispatch(transaction)

    # ------------------------------------------------------------------
    # Widgets
    # ------------------------------------------------------------------
    def toggle_checkbox(self, overlay: Overlay) -> bool:
        widget = overlay.widget
        if not isinstance(widget, CheckboxWidget):
            raise TypeError("Overlay does not carry a checkbox widget")
        changes = ChangeSet.of([widget.toggle_edit()], len(self.text))
        return self.dispatch(Transaction(changes=changes, user_event="input.checkbox"))

    def table_editor_for(self, overlay: Overlay) -> TableEditor:
        widget = overlay.widget
        if not isinstance(widget, TableWidget):
            raise TypeError("Overlay does not carry a table widget")
        if widget.editor is None:
            widget.editor = TableEditor(
                widget.model,
                self.dispatch,
                lambda: self.text,
                preferences=self.formatting_preferences,
            )
            self._table_editors.add(widget.editor)
        return widget.editor

    def focus_table_cell(self, overlay: Overlay, row: int, col: int) -> TableEditor:
        editor = self.table_editor_for(overlay)
        editor.focus_cell(row, col)
        self.active_table = editor
        return editor

    def blur_table(self) -> None:
        if self.active_table is not None:
            self.active_table.blur()
            self.active_table = None

    def link_target_at(self, pos: int) -> tuple[str, str] | None:
        """Return ``("url", href)`` or ``("wiki", target)`` for a link mark at ``pos``."""

        for overlay in self._overlays.at(pos):
            if overlay.kind is not OverlayKind.MARK:
                continue
            if "data-url" in overlay.attributes:
                return ("url", overlay.attributes["data-url"])
            if "data-wiki-target" in overlay.attributes:
                return ("wiki", overlay.attributes["data-wiki-target"])
        return None


__all__ = ["EDIT_DEBOUNCE_SECONDS", "EditorSession", "ScrollHost"]
