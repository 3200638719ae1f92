"""Keeps the selected book and in-progress edits valid across snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from contacts_cli.snapshot import Snapshot

logger = logging.getLogger(__name__)

EditKey = Tuple[str, ...]


def description_key(book_id: str, contact_id: str) -> EditKey:
    return ("description", book_id, contact_id)


def social_key(book_id: str, contact_id: str, key: str) -> EditKey:
    return ("social", book_id, contact_id, key)


@dataclass
class ViewSelection:
    selected_book_id: Optional[str] = None


@dataclass
class PendingLabel:
    label: str
    # books already carrying the label when the command was sent
    excluded: FrozenSet[str] = field(default_factory=frozenset)


class SelectionTracker:
    def __init__(self) -> None:
        self.selection = ViewSelection()
        self.pending: Optional[PendingLabel] = None
        self._edits: Dict[EditKey, str] = {}

    @property
    def selected_book_id(self) -> Optional[str]:
        return self.selection.selected_book_id

    @property
    def edits(self) -> Mapping[EditKey, str]:
        return dict(self._edits)

    def select(self, book_id: Optional[str]) -> None:
        """Manual selection; drops any label still waiting to resolve."""

        self.selection.selected_book_id = book_id
        self.pending = None

    @staticmethod
    def books_with_label(snapshot: Snapshot, label: str) -> FrozenSet[str]:
        return frozenset(book_id for book_id, book in snapshot.books.items() if book.label == label)

    def expect_label(
        self,
        label: str,
        snapshot: Snapshot,
        excluded: FrozenSet[str] = frozenset(),
    ) -> bool:
        """Wait for a book labelled ``label`` and select it once it shows up.

        Called after a successful ``NewBook`` or ``AcceptInvite``. The backend
        does not return the new id, so the book is found by its display label,
        in ``snapshot`` or any later one. ``excluded`` holds the books that
        carried the label before the command was sent, so a duplicate name
        resolves to the new book.
        """

        self.pending = PendingLabel(label=label, excluded=excluded)
        return self._resolve_pending(snapshot)

    def _editing_selected_book(self) -> bool:
        book_id = self.selection.selected_book_id
        return book_id is not None and any(key[1] == book_id for key in self._edits)

    def _resolve_pending(self, snapshot: Snapshot) -> bool:
        if self.pending is None:
            return False
        if self._editing_selected_book():
            # the selection stays put until the open edit is committed or cancelled
            logger.debug("Book %r held back while an edit is open", self.pending.label)
            return False
        for book_id, book in snapshot.books.items():
            if book.label == self.pending.label and book_id not in self.pending.excluded:
                self.selection.selected_book_id = book_id
                self.pending = None
                return True
        logger.info("Book %r not in snapshot yet; selection unresolved", self.pending.label)
        return False

    def reconcile(self, snapshot: Snapshot) -> Optional[str]:
        """Apply a freshly replaced snapshot and return the selected book id."""

        self._drop_orphaned_edits(snapshot)
        if not self._resolve_pending(snapshot):
            if self.selection.selected_book_id not in snapshot.books:
                self.selection.selected_book_id = snapshot.first_book_id()
        return self.selection.selected_book_id

    def resume_pending(self, snapshot: Snapshot) -> bool:
        """Retry a label held back by an edit that has since ended."""

        return self._resolve_pending(snapshot)

    def _drop_orphaned_edits(self, snapshot: Snapshot) -> None:
        for key in list(self._edits):
            contact = snapshot.find_contact(key[1], key[2])
            if contact is None or (key[0] == "social" and key[3] not in contact.socials):
                del self._edits[key]

    def begin_edit(self, key: EditKey, initial: str) -> None:
        self._edits.setdefault(key, initial)

    def update_edit(self, key: EditKey, text: str) -> None:
        if key in self._edits:
            self._edits[key] = text

    def is_editing(self, key: EditKey) -> bool:
        return key in self._edits

    def draft(self, key: EditKey) -> Optional[str]:
        return self._edits.get(key)

    def commit_edit(self, key: EditKey) -> Optional[str]:
        """Leave edit mode and hand back the text to send."""

        return self._edits.pop(key, None)

    def cancel_edit(self, key: EditKey) -> None:
        self._edits.pop(key, None)
