"""Table projection, canonical markup and the editable table widget bridge."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Sequence

from ..core.changes import ChangeSet, EditDescriptor
from ..core.ranges import TextRange
from ..editor.document_model import Transaction
from ..editor.formatting import (
    FormatCommand,
    FormattingOptions,
    FormattingPreferences,
    TextFormatResult,
    apply_command_to_text,
)
from ..utils.debounce import Debouncer
from .widgets import Widget

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .builder import DecorationContext

LOGGER = logging.getLogger(__name__)

_ALIGNMENT_CELL = re.compile(r"^:?-+:?$")

TABLE_EDIT_EVENT = "input.table"


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"

    @classmethod
    def from_cell(cls, cell: str) -> Alignment:
        value = cell.strip()
        if value.startswith(":") and value.endswith(":"):
            return cls.CENTER
        if value.endswith(":"):
            return cls.RIGHT
        return cls.LEFT

    @property
    def separator(self) -> str:
        if self is Alignment.CENTER:
            return " :---: "
        if self is Alignment.RIGHT:
            return " ---: "
        return " :--- "


@dataclass(slots=True)
class TableModel:
    """Editable projection of a table block.

    Every row holds exactly ``len(headers)`` cells. ``source_from`` and
    ``source_to`` locate the markup this model writes back to.
    """

    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)
    alignments: list[Alignment] = field(default_factory=list)
    source_from: int = 0
    source_to: int = 0

    def __post_init__(self) -> None:
        width = len(self.headers)
        self.rows = [_fit(row, width) for row in self.rows]
        aligns = [Alignment(item) for item in self.alignments[:width]]
        aligns.extend(Alignment.LEFT for _ in range(width - len(aligns)))
        self.alignments = aligns

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def copy(self) -> TableModel:
        return TableModel(
            headers=list(self.headers),
            rows=[list(row) for row in self.rows],
            alignments=list(self.alignments),
            source_from=self.source_from,
            source_to=self.source_to,
        )


def _fit(row: Sequence[str], width: int) -> list[str]:
    cells = [str(cell) for cell in row[:width]]
    cells.extend("" for _ in range(width - len(cells)))
    return cells


def parse_table_row(line: str) -> list[str]:
    trimmed = line.strip()
    if trimmed.startswith("|"):
        trimmed = trimmed[1:]
    if trimmed.endswith("|"):
        trimmed = trimmed[:-1]
    return [cell.strip() for cell in trimmed.split("|")]


def parse_table_text(text: str, source_from: int = 0, source_to: Optional[int] = None) -> TableModel | None:
    """Parse pipe-table markup; ``None`` when the alignment row is malformed."""

    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        return None
    headers = parse_table_row(lines[0])
    if not headers:
        return None
    alignment_row = parse_table_row(lines[1])
    if not all(_ALIGNMENT_CELL.match(cell.strip()) for cell in alignment_row):
        return None
    return TableModel(
        headers=headers,
        rows=[parse_table_row(line) for line in lines[2:]],
        alignments=[Alignment.from_cell(cell) for cell in alignment_row],
        source_from=source_from,
        source_to=source_from + len(text) if source_to is None else source_to,
    )


def reconstruct_markdown(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    alignments: Sequence[Alignment],
) -> str:
    """Render canonical table markup with single-space cell padding."""

    width = len(headers)
    aligns = list(alignments[:width]) + [Alignment.LEFT] * max(0, width - len(alignments))
    lines = [
        "|" + "|".join(f" {cell} " for cell in headers) + "|",
        "|" + "|".join(Alignment(item).separator for item in aligns) + "|",
    ]
    for row in rows:
        lines.append("|" + "|".join(f" {cell} " for cell in _fit(row, width)) + "|")
    return "\n".join(lines)


class TableWidget(Widget):
    """Block widget rendering a :class:`TableModel` as an editable grid."""

    css_class = "cm-table-widget"

    def __init__(self, model: TableModel, context: Optional["DecorationContext"] = None) -> None:
        self.model = model
        self.context = context
        self.editor: Optional[TableEditor] = None

    def key(self) -> tuple[Any, ...]:
        return (tuple(self.model.headers), tuple(tuple(row) for row in self.model.rows))

    def describe(self) -> Dict[str, Any]:
        return {
            "type": "TableWidget",
            "headers": list(self.model.headers),
            "rows": [list(row) for row in self.model.rows],
            "alignments": [item.value for item in self.model.alignments],
            "source_from": self.model.source_from,
            "source_to": self.model.source_to,
        }

    def render_html(self) -> str:
        aligns = self.model.alignments

        def cell(tag: str, value: str, index: int) -> str:
            return (
                f'<{tag} contenteditable="true" style="text-align: {aligns[index].value}">'
                f"{html.escape(value.strip())}</{tag}>"
            )

        head = "".join(cell("th", value, index) for index, value in enumerate(self.model.headers))
        body = "".join(
            "<tr>" + "".join(cell("td", value, index) for index, value in enumerate(row)) + "</tr>"
            for row in self.model.rows
        )
        return (
            '<div class="cm-table-wrapper">'
            f'<table class="{self.css_class}"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'
            '<button type="button" class="cm-table-control cm-table-add-row" title="Add row">+</button>'
            '<button type="button" class="cm-table-control cm-table-add-column" title="Add column">+</button>'
            "</div>"
        )


Dispatch = Callable[[Transaction], Any]


class TableEditor:
    """Live grid behind a table widget; writes every change back into the document.

    ``dispatch`` receives widget-originated transactions and ``document_text``
    returns the current document. Cell coordinates use row ``-1`` for the
    header row.
    """

    MIN_ROWS = 1
    MIN_COLUMNS = 2

    def __init__(
        self,
        model: TableModel,
        dispatch: Dispatch,
        document_text: Callable[[], str],
        *,
        preferences: FormattingPreferences | None = None,
        blur_delay: float = 0.0,
    ) -> None:
        self.model = model
        self._dispatch = dispatch
        self._document_text = document_text
        self._preferences = preferences or FormattingPreferences()
        self.headers = [value.strip() for value in model.headers]
        self.rows = [[value.strip() for value in row] for row in model.rows]
        self.alignments = list(model.alignments)
        self.focus: Optional[tuple[int, int]] = None
        self.cell_selection: Optional[TextRange] = None
        self._blur = Debouncer(self._commit_if_unfocused, blur_delay)
        self._syncing = False
        self._detached = False

    # ------------------------------------------------------------------
    # Grid access
    # ------------------------------------------------------------------
    def cell(self, row: int, col: int) -> str:
        return self.headers[col] if row < 0 else self.rows[row][col]

    def set_cell(self, row: int, col: int, text: str) -> bool:
        """Replace one cell's text and sync."""

        if row < 0:
            self.headers[col] = text
        else:
            self.rows[row][col] = text
        return self.sync()

    def read_grid(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Load cell contents read back from the rendered grid."""

        self.headers = [str(value) for value in headers]
        width = len(self.headers)
        self.rows = [_fit(row, width) for row in rows]
        del self.alignments[width:]
        self.alignments.extend(Alignment.LEFT for _ in range(width - len(self.alignments)))

    def markdown(self) -> str:
        return reconstruct_markdown(self.headers, self.rows, self.alignments)

    def sync(self) -> bool:
        """Write the grid back if it differs from the document; returns ``True`` when it did."""

        if self._detached:
            LOGGER.warning("Ignoring write-back from a table editor detached from the document")
            return False
        new_text = self.markdown()
        document = self._document_text()
        start, end = self.model.source_from, min(self.model.source_to, len(document))
        if document[start:end] == new_text:
            return False
        changes = ChangeSet.of([EditDescriptor(start, end, new_text)], len(document))
        self._syncing = True
        try:
            result = self._dispatch(Transaction(changes=changes, origin_is_widget=True, user_event=TABLE_EDIT_EVENT))
        finally:
            self._syncing = False
        if result is False:
            LOGGER.warning("Table write-back at %d-%d was refused", start, end)
            return False
        self.model.source_to = start + len(new_text)
        self.model.headers = list(self.headers)
        self.model.rows = [list(row) for row in self.rows]
        self.model.alignments = list(self.alignments)
        return True

    @property
    def detached(self) -> bool:
        return self._detached

    def remap(self, changes: ChangeSet) -> bool:
        """Follow an edit made elsewhere in the document.

        Returns ``False`` when ``changes`` rewrote part of the table itself;
        the grid is then stale and the caller should :meth:`detach` it.
        """

        if self._syncing:
            return True
        start, end = self.model.source_from, self.model.source_to
        if changes.touches(start, end):
            return False
        self.model.source_from = changes.map_pos(start, 1)
        self.model.source_to = changes.map_pos(end, -1)
        return True

    def detach(self) -> None:
        """Stop writing back; later edits through this editor are refused."""

        self._detached = True
        self._blur.cancel()
        self.focus = None
        self.cell_selection = None

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------
    def add_row(self, focus_col: Optional[int] = None) -> bool:
        self.rows.append([""] * len(self.headers))
        changed = self.sync()
        if focus_col is not None and 0 <= focus_col < len(self.headers):
            self.focus_cell(len(self.rows) - 1, focus_col)
        return changed

    def add_column(self) -> bool:
        self.headers.append("")
        self.alignments.append(Alignment.LEFT)
        for row in self.rows:
            row.append("")
        changed = self.sync()
        self.focus_cell(-1, len(self.headers) - 1)
        return changed

    def delete_row(self, index: int) -> bool:
        if len(self.rows) <= self.MIN_ROWS or not 0 <= index < len(self.rows):
            return False
        del self.rows[index]
        return self.sync()

    def delete_column(self, index: int) -> bool:
        if len(self.headers) <= self.MIN_COLUMNS or not 0 <= index < len(self.headers):
            return False
        del self.headers[index]
        del self.alignments[index]
        for row in self.rows:
            del row[index]
        return self.sync()

    # ------------------------------------------------------------------
    # Focus and keyboard navigation
    # ------------------------------------------------------------------
    def focus_cell(self, row: int, col: int, selection: Optional[TextRange] = None) -> None:
        self._blur.cancel()
        self.focus = (row, col)
        text = self.cell(row, col)
        self.cell_selection = selection if selection is not None else TextRange.caret(len(text))

    def blur(self) -> None:
        """Leave the grid; the pending edit is committed after the blur delay."""

        self.focus = None
        self.cell_selection = None
        self._blur.call()

    def commit_on_blur(self) -> None:
        self._blur.call()

    def _commit_if_unfocused(self) -> None:
        if self.focus is None:
            self.sync()

    def move_focus(self, key: str, *, shift: bool = False) -> Optional[tuple[int, int]]:
        """Handle ``Tab``/``Enter`` navigation from the focused cell.

        Moving past the last cell (Tab) or the last row (Enter) appends a row.
        """

        if self.focus is None:
            return None
        row, col = self.focus
        width = len(self.headers)
        if key == "Tab":
            cells = [(-1, index) for index in range(width)]
            cells.extend((r, c) for r in range(len(self.rows)) for c in range(width))
            target = cells.index((row, col)) + (-1 if shift else 1)
            if 0 <= target < len(cells):
                self.focus_cell(*cells[target])
            elif not shift and target >= len(cells):
                self.add_row(focus_col=0)
            return self.focus
        if key == "Enter" and not shift:
            if row + 1 < len(self.rows):
                self.focus_cell(row + 1, col)
            else:
                self.add_row(focus_col=col)
            return self.focus
        return self.focus

    # ------------------------------------------------------------------
    # Formatting inside the focused cell
    # ------------------------------------------------------------------
    def apply_format(
        self,
        command: FormatCommand | str,
        preferences: FormattingPreferences | None = None,
        options: FormattingOptions | None = None,
    ) -> TextFormatResult | None:
        """Format the focused cell's selection; ``None`` when no cell has focus."""

        if self.focus is None:
            return None
        row, col = self.focus
        text = self.cell(row, col)
        selection = self.cell_selection or TextRange.caret(len(text))
        result = apply_command_to_text(text, selection, command, preferences or self._preferences, options)
        if result.changed:
            self.set_cell(row, col, result.text)
            self.cell_selection = result.selection
        return result


__all__ = [
    "Alignment",
    "TABLE_EDIT_EVENT",
    "TableEditor",
    "TableModel",
    "TableWidget",
    "parse_table_row",
    "parse_table_text",
    "reconstruct_markdown",
]
