"""Pure derivation of the screen structure from a snapshot.

``render`` reads nothing but its arguments, and every value it returns is a
frozen dataclass, so two renders of the same input compare equal. Curses
drawing in ``tui_app`` consumes the result and never looks back at the
snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from contacts_cli.selection import EditKey, description_key, social_key
from contacts_cli.snapshot import Book, Snapshot, short_identity

BOOK_SELECTOR_LABEL = "Choose a Contact Book:"
NO_BOOKS_LABEL = "No Contact Books yet, create one below."
NO_DESCRIPTION = "(no description, Enter to add)"

FOCUS_INVITES = "invites"
FOCUS_BOOKS = "books"
FOCUS_CONTACTS = "contacts"
FOCUS_PEERS = "peers"
FOCUS_FORM = "form"

# ("description", contact_id) or ("social", contact_id, key)
RowKey = Tuple[str, ...]


@dataclass(frozen=True)
class Cursor:
    focus_area: str = FOCUS_BOOKS
    invite_id: Optional[str] = None
    contact_row: Optional[RowKey] = None
    peer_address: Optional[str] = None


@dataclass(frozen=True)
class FormView:
    kind: str
    title: str
    fields: Tuple[Tuple[str, str], ...]
    active_field: int


@dataclass(frozen=True)
class InviteView:
    id: str
    sender: str
    name: str
    permission: str
    selected: bool


@dataclass(frozen=True)
class SocialView:
    key: str
    value: str
    editing: bool
    selected: bool


@dataclass(frozen=True)
class ContactView:
    id: str
    description: str
    has_description: bool
    editing: bool
    selected: bool
    socials: Tuple[SocialView, ...]


@dataclass(frozen=True)
class PeerView:
    address: str
    identity: str
    status: str
    selected: bool


@dataclass(frozen=True)
class BookView:
    id: str
    title: str
    contacts: Tuple[ContactView, ...]
    peers: Tuple[PeerView, ...]


@dataclass(frozen=True)
class ViewState:
    our: str
    focus_area: str
    invites: Tuple[InviteView, ...]
    book_selector_visible: bool
    book_selector_label: str
    book_options: Tuple[Tuple[str, str], ...]
    selected_book_id: Optional[str]
    book: Optional[BookView]
    form: Optional[FormView]
    status_line: str

    @property
    def invites_visible(self) -> bool:
        return bool(self.invites)


def contact_rows(book: Book) -> List[RowKey]:
    """Navigable rows of a book's contact list, in display order."""

    rows: List[RowKey] = []
    for contact_id, contact in book.contacts.items():
        rows.append(("description", contact_id))
        for key in contact.socials:
            rows.append(("social", contact_id, key))
    return rows


def _render_book(book: Book, edits: Mapping[EditKey, str], cursor: Cursor) -> BookView:
    contacts = []
    for contact_id, contact in book.contacts.items():
        desc_key = description_key(book.id, contact_id)
        editing = desc_key in edits
        if editing:
            description = edits[desc_key]
        else:
            description = contact.description or NO_DESCRIPTION
        socials = tuple(
            SocialView(
                key=key,
                value=edits.get(social_key(book.id, contact_id, key), value),
                editing=social_key(book.id, contact_id, key) in edits,
                selected=cursor.focus_area == FOCUS_CONTACTS and cursor.contact_row == ("social", contact_id, key),
            )
            for key, value in contact.socials.items()
        )
        contacts.append(
            ContactView(
                id=contact_id,
                description=description,
                has_description=bool(contact.description),
                editing=editing,
                selected=cursor.focus_area == FOCUS_CONTACTS and cursor.contact_row == ("description", contact_id),
                socials=socials,
            )
        )
    peers = tuple(
        PeerView(
            address=address,
            identity=short_identity(address),
            status=status,
            selected=cursor.focus_area == FOCUS_PEERS and cursor.peer_address == address,
        )
        for address, status in book.peers.items()
    )
    return BookView(id=book.id, title=f"Book: {book.name}", contacts=tuple(contacts), peers=peers)


def render(
    snapshot: Snapshot,
    selected_book_id: Optional[str],
    edits: Mapping[EditKey, str],
    *,
    our: str = "",
    cursor: Cursor = Cursor(),
    form: Optional[FormView] = None,
    status_line: str = "",
) -> ViewState:
    invites = tuple(
        InviteView(
            id=invite_id,
            sender=short_identity(invite.sender),
            name=invite.name,
            permission=invite.permission or "",
            selected=cursor.focus_area == FOCUS_INVITES and cursor.invite_id == invite_id,
        )
        for invite_id, invite in snapshot.pending_invites.items()
    )
    options = tuple((book_id, book.label) for book_id, book in snapshot.books.items())
    book = snapshot.books.get(selected_book_id) if selected_book_id is not None else None
    return ViewState(
        our=our,
        focus_area=cursor.focus_area,
        invites=invites,
        book_selector_visible=bool(options),
        book_selector_label=BOOK_SELECTOR_LABEL if options else NO_BOOKS_LABEL,
        book_options=options,
        selected_book_id=book.id if book is not None else None,
        book=_render_book(book, edits, cursor) if book is not None else None,
        form=form,
        status_line=status_line,
    )
