import unittest

import pytest

from contacts_cli.snapshot import (
    EMPTY_SNAPSHOT,
    SnapshotModel,
    book_label,
    full_address,
    parse_snapshot,
    short_identity,
)

NS = "contacts:crdt-crm:mothu.eth"


def _payload():
    return {
        "books": {
            "b1": {
                "name": "Friends",
                "owner": f"alice@{NS}",
                "contacts": {
                    "carol": {"description": "met at work", "socials": {"twitter": "@carol"}},
                    "dave": {"socials": {}},
                },
                "peers": {f"alice@{NS}": "ReadWrite", f"bob@{NS}": "ReadOnly"},
            },
            "b2": {"name": "Work", "owner": f"bob@{NS}", "contacts": {}, "peers": {}},
        },
        "pending_invites": {"i1": {"from": f"erin@{NS}", "name": "Club"}},
    }


def test_parse_snapshot_keeps_backend_order_and_fields():
    snapshot = parse_snapshot(_payload())

    assert list(snapshot.books) == ["b1", "b2"]
    friends = snapshot.books["b1"]
    assert friends.name == "Friends"
    assert friends.label == "Friends (alice)"
    assert friends.contacts["carol"].socials == {"twitter": "@carol"}
    assert friends.contacts["dave"].description == ""
    assert friends.peers[f"bob@{NS}"] == "ReadOnly"
    invite = snapshot.pending_invites["i1"]
    assert invite.sender == f"erin@{NS}"
    assert invite.label == "Club (erin)"
    assert invite.permission is None


def test_parse_snapshot_without_pending_invites_defaults_to_empty():
    payload = _payload()
    del payload["pending_invites"]

    snapshot = parse_snapshot(payload)

    assert snapshot.pending_invites == {}
    assert len(snapshot.books) == 2


def test_null_description_parses_as_empty_string():
    payload = _payload()
    payload["books"]["b1"]["contacts"]["carol"]["description"] = None

    assert parse_snapshot(payload).books["b1"].contacts["carol"].description == ""


def test_malformed_snapshot_is_not_repaired():
    with pytest.raises(KeyError):
        parse_snapshot({"pending_invites": {}})
    with pytest.raises(KeyError):
        parse_snapshot({"books": {"b1": {"owner": "x"}}})


def test_address_helpers():
    assert full_address("bob", NS) == f"bob@{NS}"
    assert full_address(f" bob@{NS} ", NS) == f"bob@{NS}"
    assert short_identity(f"bob@{NS}") == "bob"
    assert book_label("Work", f"bob@{NS}") == "Work (bob)"


class SnapshotModelTests(unittest.TestCase):
    def test_replace_swaps_whole_snapshot_and_notifies(self):
        model = SnapshotModel()
        seen = []
        model.subscribe(seen.append)
        self.assertIs(model.current_snapshot(), EMPTY_SNAPSHOT)

        first = parse_snapshot(_payload())
        model.replace(first)
        second = parse_snapshot({"books": {}})
        model.replace(second)

        self.assertIs(model.current_snapshot(), second)
        self.assertEqual(seen, [first, second])

    def test_equal_payloads_parse_to_equal_snapshots(self):
        self.assertEqual(parse_snapshot(_payload()), parse_snapshot(_payload()))
