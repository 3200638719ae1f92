import unittest

from contacts_cli.selection import SelectionTracker, description_key, social_key
from contacts_cli.snapshot import parse_snapshot

NS = "contacts:crdt-crm:mothu.eth"


def _book(name, owner="alice", contacts=None, peers=None):
    return {
        "name": name,
        "owner": f"{owner}@{NS}",
        "contacts": contacts or {},
        "peers": peers or {f"{owner}@{NS}": "ReadWrite"},
    }


def _snapshot(books, invites=None):
    return parse_snapshot({"books": books, "pending_invites": invites or {}})


class SelectionTrackerTests(unittest.TestCase):
    def test_first_snapshot_selects_first_book(self):
        tracker = SelectionTracker()
        selected = tracker.reconcile(_snapshot({"b1": _book("Friends"), "b2": _book("Work")}))
        self.assertEqual(selected, "b1")

    def test_selection_survives_unrelated_snapshots(self):
        tracker = SelectionTracker()
        tracker.reconcile(_snapshot({"b1": _book("Friends"), "b2": _book("Work")}))
        tracker.select("b2")

        tracker.reconcile(
            _snapshot({"b1": _book("Friends", peers={f"bob@{NS}": "ReadOnly"}), "b2": _book("Work")})
        )

        self.assertEqual(tracker.selected_book_id, "b2")

    def test_missing_selection_falls_back_to_first_then_none(self):
        tracker = SelectionTracker()
        tracker.reconcile(_snapshot({"b1": _book("Friends"), "b2": _book("Work")}))
        tracker.select("b2")

        self.assertEqual(tracker.reconcile(_snapshot({"b3": _book("Club"), "b1": _book("Friends")})), "b3")
        self.assertIsNone(tracker.reconcile(_snapshot({})))

    def test_new_book_label_resolves_on_a_later_snapshot(self):
        tracker = SelectionTracker()
        before = _snapshot({"b1": _book("Work")})
        tracker.reconcile(before)

        self.assertFalse(tracker.expect_label("Friends (alice)", before))
        # an unrelated push first; the label is still pending
        tracker.reconcile(_snapshot({"b1": _book("Work", peers={f"bob@{NS}": "ReadWrite"})}))
        self.assertEqual(tracker.selected_book_id, "b1")
        self.assertIsNotNone(tracker.pending)

        tracker.reconcile(_snapshot({"b1": _book("Work"), "b2": _book("Friends")}))
        self.assertEqual(tracker.selected_book_id, "b2")
        self.assertIsNone(tracker.pending)

    def test_label_already_present_resolves_immediately(self):
        tracker = SelectionTracker()
        snapshot = _snapshot({"b1": _book("Work"), "b2": _book("Work", owner="bob")})
        tracker.reconcile(snapshot)

        self.assertTrue(tracker.expect_label("Work (bob)", snapshot))
        self.assertEqual(tracker.selected_book_id, "b2")

    def test_duplicate_label_skips_books_that_existed_before_the_command(self):
        tracker = SelectionTracker()
        before = _snapshot({"b1": _book("Friends"), "b2": _book("Work")})
        tracker.reconcile(before)
        tracker.select("b2")
        excluded = tracker.books_with_label(before, "Friends (alice)")

        tracker.expect_label("Friends (alice)", before, excluded)
        self.assertEqual(tracker.selected_book_id, "b2")

        tracker.reconcile(_snapshot({"b1": _book("Friends"), "b2": _book("Work"), "b3": _book("Friends")}))
        self.assertEqual(tracker.selected_book_id, "b3")

    def test_manual_selection_cancels_pending_label(self):
        tracker = SelectionTracker()
        snapshot = _snapshot({"b1": _book("Work")})
        tracker.reconcile(snapshot)
        tracker.expect_label("Friends (alice)", snapshot)

        tracker.select("b1")
        tracker.reconcile(_snapshot({"b1": _book("Work"), "b2": _book("Friends")}))

        self.assertEqual(tracker.selected_book_id, "b1")

    def test_edits_survive_unrelated_snapshots(self):
        contacts = {"carol": {"description": "old", "socials": {"twitter": "@c"}}}
        tracker = SelectionTracker()
        tracker.reconcile(_snapshot({"b1": _book("Friends", contacts=contacts)}))
        desc = description_key("b1", "carol")
        tracker.begin_edit(desc, "old")
        tracker.update_edit(desc, "old and gold")

        tracker.reconcile(
            _snapshot({"b1": _book("Friends", contacts=contacts, peers={f"bob@{NS}": "ReadOnly"})})
        )

        self.assertTrue(tracker.is_editing(desc))
        self.assertEqual(tracker.draft(desc), "old and gold")

    def test_edits_for_removed_contacts_or_socials_are_dropped(self):
        contacts = {"carol": {"description": "", "socials": {"twitter": "@c"}}}
        tracker = SelectionTracker()
        tracker.reconcile(_snapshot({"b1": _book("Friends", contacts=contacts)}))
        tracker.begin_edit(social_key("b1", "carol", "twitter"), "@c")
        tracker.begin_edit(description_key("b1", "carol"), "")

        tracker.reconcile(_snapshot({"b1": _book("Friends", contacts={"carol": {"description": "", "socials": {}}})}))
        self.assertFalse(tracker.is_editing(social_key("b1", "carol", "twitter")))
        self.assertTrue(tracker.is_editing(description_key("b1", "carol")))

        tracker.reconcile(_snapshot({"b1": _book("Friends")}))
        self.assertEqual(tracker.edits, {})

    def test_commit_returns_draft_and_leaves_edit_mode(self):
        tracker = SelectionTracker()
        key = description_key("b1", "carol")
        tracker.begin_edit(key, "draft")

        self.assertEqual(tracker.commit_edit(key), "draft")
        self.assertFalse(tracker.is_editing(key))
        self.assertIsNone(tracker.commit_edit(key))

    def test_label_resolution_waits_while_the_selected_book_has_a_draft(self):
        contacts = {"carol": {"description": "old", "socials": {}}}
        tracker = SelectionTracker()
        before = _snapshot({"b1": _book("Work", contacts=contacts)})
        tracker.reconcile(before)
        tracker.expect_label("Friends (alice)", before)
        tracker.begin_edit(description_key("b1", "carol"), "old")

        after = _snapshot({"b1": _book("Work", contacts=contacts), "b2": _book("Friends")})
        tracker.reconcile(after)
        self.assertEqual(tracker.selected_book_id, "b1")
        self.assertIsNotNone(tracker.pending)

        tracker.commit_edit(description_key("b1", "carol"))
        self.assertTrue(tracker.resume_pending(after))
        self.assertEqual(tracker.selected_book_id, "b2")
