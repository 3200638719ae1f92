"""Curses front end for the shared contact books client."""

from __future__ import annotations

import curses
import logging
from typing import Optional, Sequence

from contacts_cli.commands import PERMISSION_READ_WRITE, Command
from contacts_cli.config import configure_logging, resolve_config
from contacts_cli.snapshot import book_label
from contacts_cli.sync import STATE_CLOSED, SyncController
from contacts_cli.tui_model import (
    FORM_ADD_CONTACT,
    FORM_ADD_SOCIAL,
    FORM_INVITE_PEER,
    FORM_NEW_BOOK,
    ContactsModel,
    Form,
)
from contacts_cli.view import FOCUS_BOOKS, FOCUS_CONTACTS, FOCUS_FORM, FOCUS_INVITES, FOCUS_PEERS, ViewState

logger = logging.getLogger(__name__)

HELP_LINE = (
    "Tab: focus | n: new book | Enter: edit/accept/next field | a: add contact | s: add social | "
    "i: invite peer | x/Del: remove | Esc: cancel | q: quit"
)


def _normalize_key(key: int) -> tuple[str, str | None]:
    if key in (curses.KEY_BTAB, 353):  # shift-tab variations
        return "SHIFT_TAB", None
    key_tab = getattr(curses, "KEY_TAB", 9)
    if key in (key_tab, 9):
        return "TAB", None
    if key in (curses.KEY_UP,):
        return "UP", None
    if key in (curses.KEY_DOWN,):
        return "DOWN", None
    if key in (curses.KEY_ENTER, 10, 13):
        return "ENTER", None
    if key in (curses.KEY_BACKSPACE, 127, 8):
        return "BACKSPACE", None
    # Forward-delete varies across platforms/terminfo.
    if key in (getattr(curses, "KEY_DC", 330), 330):
        return "DELETE", None
    if key == 14:  # ctrl-n
        return "CTRL_N", None
    if key == 27:
        return "ESC", None
    if 32 <= key <= 126:
        return "CHAR", chr(key)
    return "UNKNOWN", None


def _render_text(window: curses.window, y: int, x: int, text: str, attr: int = 0) -> None:
    max_y, max_x = window.getmaxyx()
    if 0 <= y < max_y and x < max_x - 1:
        window.addnstr(y, x, text, max_x - x - 1, attr)


def _init_default_colors(stdscr: curses.window) -> None:
    """Respect the terminal's configured theme."""

    if not curses.has_colors():
        return
    try:
        curses.start_color()
        curses.use_default_colors()
    except curses.error:
        return
    try:
        stdscr.bkgd(" ", curses.color_pair(0))
    except curses.error:
        pass


def _draw_left_column(stdscr: curses.window, render: ViewState, top: int) -> int:
    y = top
    if render.invites_visible:
        _render_text(stdscr, y, 1, "Invites", curses.A_BOLD)
        y += 1
        for invite in render.invites:
            attr = curses.A_REVERSE if invite.selected else 0
            permission = f" [{invite.permission}]" if invite.permission else ""
            _render_text(stdscr, y, 2, f"From: {invite.sender}  Book name: {invite.name}{permission}", attr)
            y += 1
        y += 1
    _render_text(stdscr, y, 1, render.book_selector_label, curses.A_BOLD)
    y += 1
    if render.book_selector_visible:
        for book_id, label in render.book_options:
            marker = ">" if book_id == render.selected_book_id else " "
            attr = curses.A_REVERSE if render.focus_area == FOCUS_BOOKS and book_id == render.selected_book_id else 0
            _render_text(stdscr, y, 2, f"{marker} {label}", attr)
            y += 1
    return y + 1


def _draw_book(stdscr: curses.window, render: ViewState, top: int, left: int) -> int:
    book = render.book
    y = top
    if book is None:
        return y
    _render_text(stdscr, y, left, book.title, curses.A_BOLD)
    y += 2
    for contact in book.contacts:
        _render_text(stdscr, y, left, contact.id, curses.A_UNDERLINE)
        y += 1
        attr = curses.A_REVERSE if contact.selected else 0
        text = contact.description
        if contact.editing:
            text = f"[edit] {text}_"
        _render_text(stdscr, y, left + 2, text, attr)
        y += 1
        for social in contact.socials:
            attr = curses.A_REVERSE if social.selected else 0
            value = f"[edit] {social.value}_" if social.editing else social.value
            _render_text(stdscr, y, left + 4, f"{social.key}: {value}", attr)
            y += 1
    y += 1
    _render_text(stdscr, y, left, "Peers", curses.A_BOLD)
    y += 1
    for peer in book.peers:
        attr = curses.A_REVERSE if peer.selected else 0
        _render_text(stdscr, y, left + 2, f"{peer.identity}  Status: {peer.status}", attr)
        y += 1
    return y + 1


def _draw_form(stdscr: curses.window, render: ViewState, top: int, left: int) -> None:
    form = render.form
    if form is None:
        return
    _render_text(stdscr, top, left, f"{form.title} (Enter to advance/submit, Esc to close)", curses.A_BOLD)
    y = top + 1
    for idx, (name, value) in enumerate(form.fields):
        attr = curses.A_REVERSE if render.focus_area == FOCUS_FORM and idx == form.active_field else 0
        _render_text(stdscr, y, left + 2, f"{name}: {value}", attr)
        y += 1


def draw_screen(stdscr: curses.window, model: ContactsModel) -> None:
    stdscr.erase()
    max_y, max_x = stdscr.getmaxyx()
    left_width = min(40, max(24, max_x // 3))
    header_offset = 4
    render = model.render()

    _render_text(stdscr, 0, 1, f"Contacts ({render.our or 'identity unknown'})")
    _render_text(stdscr, 1, 1, HELP_LINE)
    _render_text(stdscr, 2, 1, render.status_line)
    stdscr.vline(header_offset, left_width, curses.ACS_VLINE, max(1, max_y - header_offset))

    form_top = _draw_left_column(stdscr, render, header_offset)
    book_bottom = _draw_book(stdscr, render, header_offset, left_width + 2)
    if render.book is None:
        _draw_form(stdscr, render, form_top, 1)
    else:
        _draw_form(stdscr, render, max(book_bottom, form_top), left_width + 2)
    stdscr.refresh()


def _status_line(controller: SyncController, model: ContactsModel) -> str:
    state = "updates closed" if controller.state == STATE_CLOSED else "live"
    focus = {
        FOCUS_INVITES: "invites",
        FOCUS_BOOKS: "books",
        FOCUS_CONTACTS: "contacts",
        FOCUS_PEERS: "peers",
        FOCUS_FORM: "form",
    }.get(model.focus_area, model.focus_area)
    return f"[{state}] focus: {focus}"


def _submit(controller: SyncController, command: Optional[Command], on_done=None) -> None:
    if command is None:
        return
    controller.submit(command, on_done)


def _finish_form(model: ContactsModel, form: Form) -> None:
    if model.form is form:
        model.close_form()


def _follow_label(model: ContactsModel, label: str, excluded: frozenset) -> None:
    model.tracker.expect_label(label, model.snapshot(), excluded)
    model.on_snapshot(model.snapshot())


def _submit_form(model: ContactsModel, controller: SyncController) -> None:
    form = model.form
    if form is None:
        return
    dispatcher = controller.dispatcher
    values = form.values
    if form.kind == FORM_NEW_BOOK:
        name = values.get("name", "").strip()
        command = dispatcher.new_book(name)
        label = book_label(name, model.context.our)
        excluded = model.tracker.books_with_label(model.snapshot(), label)

        def _on_new_book(ok: bool) -> None:
            if ok:
                _finish_form(model, form)
                _follow_label(model, label, excluded)

        _submit(controller, command, _on_new_book)
        return

    def _on_done(ok: bool) -> None:
        if ok:
            _finish_form(model, form)

    if form.kind == FORM_ADD_CONTACT:
        socials = {values.get("social_key", ""): values.get("social_value", "")}
        command = dispatcher.add_contact(form.book_id, values.get("name", ""), values.get("description", ""), socials)
        _submit(controller, command, _on_done)
    elif form.kind == FORM_INVITE_PEER:
        command = dispatcher.invite_peer(
            form.book_id,
            values.get("peer", ""),
            values.get("permission") or PERMISSION_READ_WRITE,
        )
        _submit(controller, command, _on_done)
    elif form.kind == FORM_ADD_SOCIAL:
        command = dispatcher.edit_social(form.book_id, form.contact_id, values.get("key", ""), values.get("value", ""))

        def _on_social(ok: bool) -> None:
            form.clear()
            if ok:
                _finish_form(model, form)

        _submit(controller, command, _on_social)


def perform_action(model: ContactsModel, controller: SyncController, action: str) -> bool:
    """Run the network side of an action. Returns False when the app should exit."""

    if action == "quit":
        return False
    dispatcher = controller.dispatcher
    tracker = model.tracker
    snapshot = model.snapshot()
    book_id = model.selected_book_id
    row = model.contact_cursor

    if action == "remove_book" and book_id:
        _submit(controller, dispatcher.remove_book(book_id))
    elif action == "remove_contact" and book_id and row:
        _submit(controller, dispatcher.remove_contact(book_id, row[1]))
    elif action == "remove_social" and book_id and row and row[0] == "social":
        _submit(controller, dispatcher.remove_social(book_id, row[1], row[2]))
    elif action == "remove_peer" and book_id and model.peer_cursor:
        _submit(controller, dispatcher.remove_peer(book_id, model.peer_cursor))
    elif action == "accept_invite" and model.invite_cursor:
        invite = snapshot.pending_invites.get(model.invite_cursor)
        if invite is None:
            return True
        label = invite.label
        excluded = tracker.books_with_label(snapshot, label)

        def _on_accept(ok: bool) -> None:
            if ok:
                _follow_label(model, label, excluded)

        _submit(controller, dispatcher.accept_invite(invite.id), _on_accept)
    elif action == "reject_invite" and model.invite_cursor:
        _submit(controller, dispatcher.reject_invite(model.invite_cursor))
    elif action in {"commit_description", "commit_social"}:
        edit_key = model.current_edit_key()
        if edit_key is None:
            return True
        # back to display mode before the round-trip
        text = tracker.commit_edit(edit_key)
        if text is None:
            return True
        if edit_key[0] == "description":
            command = dispatcher.edit_description(edit_key[1], edit_key[2], text)
        else:
            command = dispatcher.edit_social(edit_key[1], edit_key[2], edit_key[3], text)
        _submit(controller, command)
        model.resume_pending_selection()
    elif action == "submit_form":
        _submit_form(model, controller)
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    config = resolve_config(argv)
    configure_logging(config)
    controller = SyncController(
        config.base_url,
        config.service,
        namespace=config.namespace,
        timeout_s=config.timeout_s,
    )
    model = ContactsModel(controller.context)

    def _runner(stdscr: curses.window) -> None:
        curses.curs_set(0)
        _init_default_colors(stdscr)
        stdscr.keypad(True)
        # wake up regularly so pushed snapshots get drawn without a keypress
        stdscr.timeout(100)
        if not controller.start():
            logger.error("Starting without a snapshot from %s", config.base_url)
        try:
            while True:
                controller.pump()
                model.status_line = _status_line(controller, model)
                draw_screen(stdscr, model)
                ch = stdscr.getch()
                if ch == -1:
                    continue
                key, char = _normalize_key(ch)
                action = model.handle_key(key, char)
                if action and not perform_action(model, controller, action):
                    break
        finally:
            controller.stop()

    curses.wrapper(_runner)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
