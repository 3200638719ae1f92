"""Validate user intents against the current snapshot and send them as commands."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from contacts_cli import commands, contacts_client
from contacts_cli.commands import Command
from contacts_cli.snapshot import DEFAULT_NAMESPACE, Snapshot, full_address

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Builds tagged commands and posts them, fire-and-forget.

    Builders return ``None`` when a precondition fails against the snapshot
    returned by ``snapshot_source``. ``send`` never mutates client state; the
    effect of a command only becomes visible through a later snapshot.
    """

    def __init__(
        self,
        base_url: str,
        service: str,
        snapshot_source: Callable[[], Snapshot],
        *,
        namespace: str = DEFAULT_NAMESPACE,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.base_url = base_url
        self.service = service
        self.namespace = namespace
        self.timeout_s = timeout_s
        self._snapshot_source = snapshot_source

    def _reject(self, reason: str, *args: object) -> None:
        logger.info("Command not sent: " + reason, *args)
        return None

    def new_book(self, name: str) -> Optional[Command]:
        name = name.strip()
        if not name:
            return self._reject("book name is empty")
        return commands.new_book(name)

    def remove_book(self, book_id: str) -> Optional[Command]:
        if book_id not in self._snapshot_source().books:
            return self._reject("unknown book %s", book_id)
        return commands.remove_book(book_id)

    def add_contact(
        self,
        book_id: str,
        name: str,
        description: str = "",
        socials: Optional[Mapping[str, str]] = None,
    ) -> Optional[Command]:
        name = name.strip()
        if book_id not in self._snapshot_source().books:
            return self._reject("unknown book %s", book_id)
        if not name:
            return self._reject("contact name is empty")
        cleaned = {key.strip(): value for key, value in (socials or {}).items() if key.strip() and value}
        return commands.add_contact(book_id, name, description.strip(), cleaned)

    def remove_contact(self, book_id: str, contact_id: str) -> Optional[Command]:
        if self._snapshot_source().find_contact(book_id, contact_id) is None:
            return self._reject("unknown contact %s in book %s", contact_id, book_id)
        return commands.remove_contact(book_id, contact_id)

    def edit_description(self, book_id: str, contact_id: str, text: str) -> Optional[Command]:
        if self._snapshot_source().find_contact(book_id, contact_id) is None:
            return self._reject("unknown contact %s in book %s", contact_id, book_id)
        return commands.edit_contact_description(book_id, contact_id, text)

    def edit_social(self, book_id: str, contact_id: str, key: str, value: str) -> Optional[Command]:
        key = key.strip()
        if self._snapshot_source().find_contact(book_id, contact_id) is None:
            return self._reject("unknown contact %s in book %s", contact_id, book_id)
        if not key or not value:
            return self._reject("social key and value are required")
        return commands.edit_contact_social(book_id, contact_id, key, value)

    def remove_social(self, book_id: str, contact_id: str, key: str) -> Optional[Command]:
        contact = self._snapshot_source().find_contact(book_id, contact_id)
        if contact is None or key not in contact.socials:
            return self._reject("unknown social %s on contact %s", key, contact_id)
        return commands.remove_contact_social(book_id, contact_id, key)

    def invite_peer(
        self,
        book_id: str,
        peer: str,
        permission: str = commands.PERMISSION_READ_WRITE,
    ) -> Optional[Command]:
        if book_id not in self._snapshot_source().books:
            return self._reject("unknown book %s", book_id)
        if not peer.strip():
            return self._reject("peer address is empty")
        return commands.create_invite(book_id, full_address(peer, self.namespace), permission)

    def remove_peer(self, book_id: str, address: str) -> Optional[Command]:
        book = self._snapshot_source().books.get(book_id)
        if book is None or address not in book.peers:
            return self._reject("unknown peer %s in book %s", address, book_id)
        return commands.remove_peer(book_id, address)

    def accept_invite(self, invite_id: str) -> Optional[Command]:
        if invite_id not in self._snapshot_source().pending_invites:
            return self._reject("invite %s is not pending", invite_id)
        return commands.accept_invite(invite_id)

    def reject_invite(self, invite_id: str) -> Optional[Command]:
        if invite_id not in self._snapshot_source().pending_invites:
            return self._reject("invite %s is not pending", invite_id)
        return commands.reject_invite(invite_id)

    def send(self, command: Command) -> bool:
        """Post ``command`` once. Failures are logged and reported as ``False``."""

        tag = commands.command_tag(command)
        try:
            contacts_client.post_command(self.base_url, self.service, command, timeout=self.timeout_s)
        except contacts_client.ContactsClientHTTPError as exc:
            logger.warning("Command %s rejected with status %s", tag, exc.status_code)
            return False
        except contacts_client.ContactsClientError as exc:
            logger.warning("Command %s failed: %s", tag, exc)
            return False
        logger.debug("Command %s accepted", tag)
        return True
