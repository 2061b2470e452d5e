"""Apply a formatting command across every selection range as one transaction."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.changes import ChangeSet, EditConflictError, EditDescriptor
from ..core.ranges import SelectionSet, TextRange
from .document_model import Transaction
from .formatting import FormatCommand, FormattingOptions, FormattingPreferences, apply_command_to_text

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .session import EditorSession

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FormatPlan:
    """Combined edits plus the selection that results from applying them.

    ``skipped`` lists the indices of selection ranges the overlap guard left
    untouched because they collided with an edit further right.
    """

    changes: ChangeSet
    selection: SelectionSet
    skipped: tuple[int, ...] = ()

    def transaction(self) -> Transaction:
        return Transaction(changes=self.changes, selection=self.selection, user_event="input")


def plan_formatting(
    text: str,
    selection: SelectionSet,
    command: FormatCommand | str,
    preferences: FormattingPreferences | None = None,
    options: FormattingOptions | None = None,
) -> FormatPlan | None:
    """Compute the combined edit for ``command`` over every range in ``selection``.

    Ranges are processed right to left. After each edit the ranges already
    processed are re-anchored through it. A range whose end reaches past the
    leftmost edit made so far is skipped. Returns ``None`` when no range
    produced a text change.

    Raises :class:`EditConflictError` if the collected edits overlap.
    """

    preferences = preferences or FormattingPreferences()
    command = FormatCommand.parse(command)
    ranges: list[TextRange] = list(selection.ranges)
    order = sorted(range(len(ranges)), key=lambda index: (ranges[index].start, ranges[index].end), reverse=True)

    current_text = text
    processed: list[int] = []
    skipped: list[int] = []
    edits: list[EditDescriptor] = []
    guard = sys.maxsize

    for index in order:
        current = ranges[index]
        if current.end > guard:
            skipped.append(index)
            continue
        before = current_text
        result = apply_command_to_text(before, current, command, preferences, options)
        current_text = result.text
        ranges[index] = result.selection
        if result.changed and result.change is not None:
            step = ChangeSet.of([result.change], len(before))
            for done in processed:
                previous = ranges[done]
                ranges[done] = TextRange(step.map_pos(previous.start, -1), step.map_pos(previous.end, 1))
            edits.append(result.change)
        processed.append(index)
        guard = min(guard, result.change.start if result.change is not None else current.start)

    if not edits:
        return None
    if skipped:
        LOGGER.debug("Overlap guard skipped %d selection range(s)", len(skipped))
    changes = ChangeSet.of(edits, len(text))
    return FormatPlan(
        changes=changes,
        selection=SelectionSet(tuple(ranges), selection.main_index),
        skipped=tuple(sorted(skipped)),
    )


def apply_formatting_to_session(
    session: EditorSession,
    command: FormatCommand | str,
    preferences: FormattingPreferences | None = None,
    options: FormattingOptions | None = None,
) -> bool:
    """Format every selection range in ``session``; returns ``True`` if the text changed.

    Overlapping edits are refused: the error is logged and the document is
    left untouched.
    """

    state = session.state
    if preferences is None:
        preferences = session.formatting_preferences
    try:
        plan = plan_formatting(state.text, state.selection, command, preferences, options)
    except EditConflictError as exc:
        LOGGER.error("Refusing formatting transaction: %s (%s)", exc, exc.details())
        return False
    if plan is None:
        return False
    return session.dispatch(plan.transaction(), preserve_scroll=True)


__all__ = ["FormatPlan", "apply_formatting_to_session", "plan_formatting"]
