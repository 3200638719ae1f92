"""Pure-Python state machine behind the contacts TUI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from contacts_cli.commands import PERMISSION_READ_ONLY, PERMISSION_READ_WRITE
from contacts_cli.selection import EditKey, SelectionTracker, description_key, social_key
from contacts_cli.snapshot import Book, Snapshot
from contacts_cli.sync import ClientContext
from contacts_cli.view import (
    FOCUS_BOOKS,
    FOCUS_CONTACTS,
    FOCUS_FORM,
    FOCUS_INVITES,
    FOCUS_PEERS,
    Cursor,
    FormView,
    RowKey,
    ViewState,
    contact_rows,
    render,
)

FORM_NEW_BOOK = "new_book"
FORM_ADD_CONTACT = "add_contact"
FORM_INVITE_PEER = "invite_peer"
FORM_ADD_SOCIAL = "add_social"

T = TypeVar("T")

FORM_LAYOUTS: Dict[str, Tuple[str, List[str]]] = {
    FORM_NEW_BOOK: ("Create a new Contact Book", ["name"]),
    FORM_ADD_CONTACT: ("Add Contact", ["name", "description", "social_key", "social_value"]),
    FORM_INVITE_PEER: ("Add a new peer", ["peer", "permission"]),
    FORM_ADD_SOCIAL: ("Add Social", ["key", "value"]),
}


@dataclass
class Form:
    kind: str
    book_id: Optional[str] = None
    contact_id: Optional[str] = None
    values: Dict[str, str] = field(default_factory=dict)
    active_field: int = 0

    @property
    def field_order(self) -> List[str]:
        return FORM_LAYOUTS[self.kind][1]

    @property
    def active_key(self) -> str:
        return self.field_order[self.active_field]

    def clear(self) -> None:
        self.values = {key: "" for key in self.field_order}
        if self.kind == FORM_INVITE_PEER:
            self.values["permission"] = PERMISSION_READ_WRITE
        self.active_field = 0

    def view(self) -> FormView:
        title = FORM_LAYOUTS[self.kind][0]
        if self.contact_id:
            title = f"{title} to {self.contact_id}"
        return FormView(
            kind=self.kind,
            title=title,
            fields=tuple((key, self.values.get(key, "")) for key in self.field_order),
            active_field=self.active_field,
        )


def new_form(kind: str, book_id: Optional[str] = None, contact_id: Optional[str] = None) -> Form:
    form = Form(kind=kind, book_id=book_id, contact_id=contact_id)
    form.clear()
    return form


class ContactsModel:
    """Cursor, forms and key handling on top of a ``ClientContext``.

    Snapshot-derived state is never stored here; ``render`` recomputes it.
    Only view-local state lives on the model: focus, cursors, the open form.
    """

    def __init__(self, context: ClientContext) -> None:
        self.context = context
        self.focus_area = FOCUS_BOOKS
        self.invite_cursor: Optional[str] = None
        self.contact_cursor: Optional[RowKey] = None
        self.peer_cursor: Optional[str] = None
        self.form: Optional[Form] = None
        self.status_line = ""
        context.snapshots.subscribe(self.on_snapshot)
        self.on_snapshot(context.snapshot())

    @property
    def tracker(self) -> SelectionTracker:
        return self.context.tracker

    def snapshot(self) -> Snapshot:
        return self.context.snapshot()

    @property
    def selected_book_id(self) -> Optional[str]:
        return self.tracker.selected_book_id

    def on_snapshot(self, snapshot: Snapshot) -> None:
        """Keep cursors on rows that still exist after a replace."""

        invite_ids = list(snapshot.pending_invites)
        if self.invite_cursor not in invite_ids:
            self.invite_cursor = invite_ids[0] if invite_ids else None
        if not invite_ids and self.focus_area == FOCUS_INVITES:
            self.focus_area = FOCUS_BOOKS

        book = snapshot.books.get(self.selected_book_id) if self.selected_book_id else None
        rows = contact_rows(book) if book is not None else []
        if self.contact_cursor not in rows:
            self.contact_cursor = rows[0] if rows else None
        peers = list(book.peers) if book is not None else []
        if self.peer_cursor not in peers:
            self.peer_cursor = peers[0] if peers else None

        form = self.form
        if form is not None and form.book_id is not None:
            gone = form.book_id not in snapshot.books
            if not gone and form.contact_id is not None:
                gone = snapshot.find_contact(form.book_id, form.contact_id) is None
            if gone:
                self.close_form()

    def resume_pending_selection(self) -> None:
        """Apply a new-book selection that waited for an edit to end."""

        if self.tracker.resume_pending(self.snapshot()):
            self.on_snapshot(self.snapshot())

    def cursor(self) -> Cursor:
        return Cursor(
            focus_area=self.focus_area,
            invite_id=self.invite_cursor,
            contact_row=self.contact_cursor,
            peer_address=self.peer_cursor,
        )

    def render(self) -> ViewState:
        return render(
            self.snapshot(),
            self.selected_book_id,
            self.tracker.edits,
            our=self.context.our,
            cursor=self.cursor(),
            form=self.form.view() if self.form is not None else None,
            status_line=self.status_line,
        )

    def focus_order(self) -> List[str]:
        order = [FOCUS_BOOKS, FOCUS_CONTACTS, FOCUS_PEERS]
        if self.snapshot().pending_invites:
            order.insert(0, FOCUS_INVITES)
        return order

    def focus_next(self, delta: int = 1) -> None:
        order = self.focus_order()
        if self.focus_area not in order:
            self.focus_area = order[0]
            return
        idx = order.index(self.focus_area)
        self.focus_area = order[(idx + delta) % len(order)]

    def select_book(self, delta: int) -> None:
        book_ids = list(self.snapshot().books)
        if not book_ids:
            return
        current = self.selected_book_id
        idx = book_ids.index(current) if current in book_ids else 0
        self.tracker.select(book_ids[(idx + delta) % len(book_ids)])
        self.on_snapshot(self.snapshot())

    def _move(self, items: Sequence[T], current: Optional[T], delta: int) -> Optional[T]:
        if not items:
            return None
        idx = items.index(current) if current in items else 0
        return items[max(0, min(len(items) - 1, idx + delta))]

    def _selected_book(self) -> Optional[Book]:
        return self.snapshot().books.get(self.selected_book_id) if self.selected_book_id else None

    def current_edit_key(self) -> Optional[EditKey]:
        if self.selected_book_id is None or self.contact_cursor is None:
            return None
        if self.contact_cursor[0] == "description":
            return description_key(self.selected_book_id, self.contact_cursor[1])
        return social_key(self.selected_book_id, self.contact_cursor[1], self.contact_cursor[2])

    def is_editing_current(self) -> bool:
        key = self.current_edit_key()
        return key is not None and self.tracker.is_editing(key)

    def begin_edit_current(self) -> None:
        key = self.current_edit_key()
        if key is None:
            return
        contact = self.snapshot().find_contact(key[1], key[2])
        if contact is None:
            return
        initial = contact.description if key[0] == "description" else contact.socials.get(key[3], "")
        self.tracker.begin_edit(key, initial)

    def open_form(self, kind: str) -> None:
        contact_id = None
        if kind == FORM_ADD_SOCIAL:
            if self.contact_cursor is None:
                return
            contact_id = self.contact_cursor[1]
        if kind != FORM_NEW_BOOK and self.selected_book_id is None:
            return
        book_id = None if kind == FORM_NEW_BOOK else self.selected_book_id
        same_target = (
            self.form is not None
            and self.form.kind == kind
            and self.form.book_id == book_id
            and self.form.contact_id == contact_id
        )
        if not same_target:
            # reopening the same form keeps what was typed
            self.form = new_form(kind, book_id, contact_id)
        self.focus_area = FOCUS_FORM

    def close_form(self) -> None:
        self.form = None
        self.focus_area = FOCUS_CONTACTS if self.selected_book_id else FOCUS_BOOKS

    def text_entry_active(self) -> bool:
        return self.focus_area == FOCUS_FORM or (self.focus_area == FOCUS_CONTACTS and self.is_editing_current())

    def handle_key(self, key: str, char: Optional[str] = None) -> Optional[str]:
        """Handle a normalized key and return an action string when needed."""

        if self.focus_area == FOCUS_FORM and self.form is not None:
            return self._handle_form_key(key, char)
        if self.focus_area == FOCUS_CONTACTS and self.is_editing_current():
            return self._handle_edit_key(key, char)

        if key == "CHAR" and char in {"q", "Q"}:
            return "quit"
        if key == "TAB":
            self.focus_next(1)
            return None
        if key == "SHIFT_TAB":
            self.focus_next(-1)
            return None
        if key == "CTRL_N" or (key == "CHAR" and char == "n"):
            self.open_form(FORM_NEW_BOOK)
            return None
        removing = key == "DELETE" or (key == "CHAR" and char == "x")

        if self.focus_area == FOCUS_BOOKS:
            if key == "UP":
                self.select_book(-1)
            elif key == "DOWN":
                self.select_book(1)
            elif removing and self.selected_book_id:
                return "remove_book"
            return None

        if self.focus_area == FOCUS_INVITES:
            invite_ids = list(self.snapshot().pending_invites)
            if key in {"UP", "DOWN"}:
                self.invite_cursor = self._move(invite_ids, self.invite_cursor, -1 if key == "UP" else 1)
            elif key == "ENTER" and self.invite_cursor:
                return "accept_invite"
            elif removing and self.invite_cursor:
                return "reject_invite"
            return None

        book = self._selected_book()
        if self.focus_area == FOCUS_CONTACTS:
            rows = contact_rows(book) if book is not None else []
            if key in {"UP", "DOWN"}:
                self.contact_cursor = self._move(rows, self.contact_cursor, -1 if key == "UP" else 1)
            elif key == "ENTER" and self.contact_cursor is not None:
                self.begin_edit_current()
            elif key == "CHAR" and char == "a":
                self.open_form(FORM_ADD_CONTACT)
            elif key == "CHAR" and char == "s":
                self.open_form(FORM_ADD_SOCIAL)
            elif removing and self.contact_cursor is not None:
                return "remove_contact" if self.contact_cursor[0] == "description" else "remove_social"
            return None

        if self.focus_area == FOCUS_PEERS:
            peers = list(book.peers) if book is not None else []
            if key in {"UP", "DOWN"}:
                self.peer_cursor = self._move(peers, self.peer_cursor, -1 if key == "UP" else 1)
            elif key == "CHAR" and char == "i":
                self.open_form(FORM_INVITE_PEER)
            elif removing and self.peer_cursor:
                return "remove_peer"
            return None

        return None

    def _handle_edit_key(self, key: str, char: Optional[str]) -> Optional[str]:
        edit_key = self.current_edit_key()
        draft = self.tracker.draft(edit_key) or ""
        if key == "ESC":
            self.tracker.cancel_edit(edit_key)
            self.resume_pending_selection()
        elif key == "ENTER":
            return "commit_description" if edit_key[0] == "description" else "commit_social"
        elif key == "BACKSPACE":
            self.tracker.update_edit(edit_key, draft[:-1])
        elif key == "DELETE":
            self.tracker.update_edit(edit_key, "")
        elif char:
            self.tracker.update_edit(edit_key, draft + char)
        return None

    def _handle_form_key(self, key: str, char: Optional[str]) -> Optional[str]:
        form = self.form
        field_key = form.active_key
        if key == "ESC":
            self.close_form()
        elif key in {"UP", "SHIFT_TAB"}:
            form.active_field = max(0, form.active_field - 1)
        elif key in {"DOWN", "TAB"}:
            form.active_field = min(len(form.field_order) - 1, form.active_field + 1)
        elif key == "ENTER":
            if form.active_field == len(form.field_order) - 1:
                return "submit_form"
            form.active_field += 1
        elif field_key == "permission":
            if char or key in {"BACKSPACE", "DELETE"}:
                current = form.values.get("permission")
                form.values["permission"] = (
                    PERMISSION_READ_ONLY if current == PERMISSION_READ_WRITE else PERMISSION_READ_WRITE
                )
        elif key == "BACKSPACE":
            form.values[field_key] = form.values.get(field_key, "")[:-1]
        elif key == "DELETE":
            form.values[field_key] = ""
        elif char:
            form.values[field_key] = form.values.get(field_key, "") + char
        return None
