"""Builders for the tagged command objects accepted by ``POST /{service}/post``."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

PERMISSION_READ_ONLY = "ReadOnly"
PERMISSION_READ_WRITE = "ReadWrite"
PERMISSIONS = (PERMISSION_READ_WRITE, PERMISSION_READ_ONLY)

Command = Dict[str, object]


def command_tag(command: Command) -> str:
    """Return the outer tag, with the inner update tag for ``Update`` commands."""

    tag, body = next(iter(command.items()))
    if tag == "Update" and isinstance(body, list) and len(body) == 2 and isinstance(body[1], dict):
        inner = next(iter(body[1]))
        return f"Update/{inner}"
    return tag


def new_book(name: str) -> Command:
    return {"NewBook": name}


def remove_book(book_id: str) -> Command:
    return {"RemoveBook": book_id}


def create_invite(book_id: str, address: str, permission: str = PERMISSION_READ_WRITE) -> Command:
    if permission not in PERMISSIONS:
        raise ValueError(f"Unknown permission: {permission}")
    return {"CreateInvite": [book_id, address, permission]}


def accept_invite(invite_id: str) -> Command:
    return {"AcceptInvite": invite_id}


def reject_invite(invite_id: str) -> Command:
    return {"RejectInvite": invite_id}


def update(book_id: str, operation: Dict[str, object]) -> Command:
    return {"Update": [book_id, operation]}


def add_contact(
    book_id: str,
    name: str,
    description: str = "",
    socials: Optional[Mapping[str, str]] = None,
) -> Command:
    contact: Dict[str, object] = {}
    if description:
        contact["description"] = description
    contact["socials"] = dict(socials or {})
    return update(book_id, {"AddContact": [name, contact]})


def remove_contact(book_id: str, contact_id: str) -> Command:
    return update(book_id, {"RemoveContact": contact_id})


def edit_contact_description(book_id: str, contact_id: str, text: str) -> Command:
    return update(book_id, {"EditContactDescription": [contact_id, text]})


def edit_contact_social(book_id: str, contact_id: str, key: str, value: str) -> Command:
    return update(book_id, {"EditContactSocial": [contact_id, key, value]})


def remove_contact_social(book_id: str, contact_id: str, key: str) -> Command:
    return update(book_id, {"RemoveContactSocial": [contact_id, key]})


def remove_peer(book_id: str, address: str) -> Command:
    return update(book_id, {"RemovePeer": address})
