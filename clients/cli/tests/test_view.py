from contacts_cli.selection import description_key, social_key
from contacts_cli.snapshot import EMPTY_SNAPSHOT, parse_snapshot
from contacts_cli.view import (
    BOOK_SELECTOR_LABEL,
    FOCUS_CONTACTS,
    NO_BOOKS_LABEL,
    NO_DESCRIPTION,
    Cursor,
    contact_rows,
    render,
)

NS = "contacts:crdt-crm:mothu.eth"


def _snapshot(socials=None, invites=None):
    return parse_snapshot(
        {
            "books": {
                "b1": {
                    "name": "Friends",
                    "owner": f"alice@{NS}",
                    "contacts": {
                        "carol": {"description": "", "socials": socials if socials is not None else {"twitter": "x"}},
                    },
                    "peers": {f"alice@{NS}": "ReadWrite", f"bob@{NS}": "ReadOnly"},
                },
                "b2": {"name": "Work", "owner": f"bob@{NS}", "contacts": {}, "peers": {}},
            },
            "pending_invites": invites or {},
        }
    )


def test_render_is_pure_and_repeatable():
    snapshot = _snapshot()
    first = render(snapshot, "b1", {}, our=f"alice@{NS}")
    second = render(snapshot, "b1", {}, our=f"alice@{NS}")

    assert first == second
    assert render(_snapshot(), "b1", {}, our=f"alice@{NS}") == first


def test_zero_books_shows_create_prompt_only():
    state = render(EMPTY_SNAPSHOT, None, {})

    assert state.book_selector_visible is False
    assert state.book_selector_label == NO_BOOKS_LABEL
    assert state.book_options == ()
    assert state.book is None
    assert state.invites_visible is False


def test_selected_book_lists_contacts_socials_and_peers():
    state = render(_snapshot(), "b1", {})

    assert state.book_selector_label == BOOK_SELECTOR_LABEL
    assert state.book_options == (("b1", "Friends (alice)"), ("b2", "Work (bob)"))
    assert state.book.title == "Book: Friends"
    (carol,) = state.book.contacts
    assert carol.description == NO_DESCRIPTION
    assert carol.has_description is False
    assert [(s.key, s.value) for s in carol.socials] == [("twitter", "x")]
    assert [(p.identity, p.status) for p in state.book.peers] == [("alice", "ReadWrite"), ("bob", "ReadOnly")]


def test_unknown_selection_renders_no_book():
    state = render(_snapshot(), "gone", {})

    assert state.book is None
    assert state.selected_book_id is None


def test_invites_render_with_short_sender_when_present():
    state = render(_snapshot(invites={"i1": {"from": f"bob@{NS}", "name": "Work"}}), "b1", {})

    assert state.invites_visible is True
    (invite,) = state.invites
    assert (invite.id, invite.sender, invite.name, invite.permission) == ("i1", "bob", "Work", "")


def test_edit_drafts_replace_displayed_values():
    edits = {
        description_key("b1", "carol"): "old friend",
        social_key("b1", "carol", "twitter"): "x2",
    }
    state = render(_snapshot(), "b1", edits)

    (carol,) = state.book.contacts
    assert carol.editing is True
    assert carol.description == "old friend"
    assert carol.socials[0].editing is True
    assert carol.socials[0].value == "x2"


def test_edits_for_other_books_do_not_leak():
    state = render(_snapshot(), "b1", {description_key("b2", "carol"): "elsewhere"})

    assert state.book.contacts[0].editing is False


def test_cursor_marks_selected_rows_in_focus_only():
    cursor = Cursor(focus_area=FOCUS_CONTACTS, contact_row=("social", "carol", "twitter"))
    state = render(_snapshot(), "b1", {}, cursor=cursor)

    (carol,) = state.book.contacts
    assert carol.selected is False
    assert carol.socials[0].selected is True
    assert not any(peer.selected for peer in state.book.peers)


def test_contact_rows_follow_display_order():
    book = _snapshot(socials={"twitter": "x", "github": "c"}).books["b1"]

    assert contact_rows(book) == [
        ("description", "carol"),
        ("social", "carol", "twitter"),
        ("social", "carol", "github"),
    ]
