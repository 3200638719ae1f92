"""Typed snapshot of the backend state and the holder that swaps it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional

DEFAULT_NAMESPACE = "contacts:crdt-crm:mothu.eth"


@dataclass(frozen=True)
class Contact:
    id: str
    description: str = ""
    socials: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Book:
    id: str
    name: str
    owner: str
    contacts: Mapping[str, Contact] = field(default_factory=dict)
    # address -> opaque status label
    peers: Mapping[str, str] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return book_label(self.name, self.owner)


@dataclass(frozen=True)
class Invite:
    id: str
    sender: str
    name: str
    permission: Optional[str] = None

    @property
    def label(self) -> str:
        """Label the accepted book will carry in a later snapshot."""

        return book_label(self.name, self.sender)


@dataclass(frozen=True)
class Snapshot:
    books: Mapping[str, Book] = field(default_factory=dict)
    pending_invites: Mapping[str, Invite] = field(default_factory=dict)

    def first_book_id(self) -> Optional[str]:
        for book_id in self.books:
            return book_id
        return None

    def find_contact(self, book_id: str, contact_id: str) -> Optional[Contact]:
        book = self.books.get(book_id)
        if book is None:
            return None
        return book.contacts.get(contact_id)


EMPTY_SNAPSHOT = Snapshot()


def short_identity(address: str) -> str:
    return address.split("@", 1)[0]


def full_address(identity: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Qualify a bare identity with the deployment namespace."""

    identity = identity.strip()
    suffix = f"@{namespace}"
    if identity.endswith(suffix):
        return identity
    return identity + suffix


def book_label(name: str, owner: str) -> str:
    return f"{name} ({short_identity(owner)})"


def _parse_contact(contact_id: str, payload: Mapping[str, Any]) -> Contact:
    socials = payload.get("socials") or {}
    return Contact(
        id=str(contact_id),
        description=str(payload.get("description") or ""),
        socials={str(key): str(value) for key, value in socials.items()},
    )


def _parse_book(book_id: str, payload: Mapping[str, Any]) -> Book:
    contacts = payload.get("contacts") or {}
    peers = payload.get("peers") or {}
    return Book(
        id=str(book_id),
        name=str(payload["name"]),
        owner=str(payload["owner"]),
        contacts={str(cid): _parse_contact(cid, entry) for cid, entry in contacts.items()},
        peers={str(address): str(status) for address, status in peers.items()},
    )


def _parse_invite(invite_id: str, payload: Mapping[str, Any]) -> Invite:
    permission = payload.get("permission")
    return Invite(
        id=str(invite_id),
        sender=str(payload["from"]),
        name=str(payload["name"]),
        permission=str(permission) if permission is not None else None,
    )


def parse_snapshot(payload: Mapping[str, Any]) -> Snapshot:
    """Build a ``Snapshot`` from the backend JSON shape.

    The backend is trusted: a payload missing ``books`` or a book ``name``
    raises instead of being repaired. ``pending_invites`` is optional since
    some update frames leave it out.
    """

    books = payload["books"] or {}
    invites = payload.get("pending_invites") or {}
    return Snapshot(
        books={str(book_id): _parse_book(book_id, entry) for book_id, entry in books.items()},
        pending_invites={str(invite_id): _parse_invite(invite_id, entry) for invite_id, entry in invites.items()},
    )


class SnapshotModel:
    """Holds exactly one snapshot; only ``replace`` changes it."""

    def __init__(self, snapshot: Snapshot = EMPTY_SNAPSHOT) -> None:
        self._snapshot = snapshot
        self._listeners: List[Callable[[Snapshot], None]] = []

    def current_snapshot(self) -> Snapshot:
        return self._snapshot

    def subscribe(self, listener: Callable[[Snapshot], None]) -> None:
        self._listeners.append(listener)

    def replace(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
