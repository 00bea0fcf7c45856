"""Tests for cart composition and the session-serialized composer."""

import gc
import threading
from dataclasses import replace

import pytest

from menuman.adapters.memory import InMemoryCartStore
from menuman.cart import (
    Cart,
    CartComposer,
    SessionLocks,
    compose,
    compose_package,
    sanitize_note,
)
from menuman.exceptions import ComputationError, MenuError
from menuman.pricing import MemberConfiguration, package_customized_total_q
from menuman.protocols import (
    CartLineItem,
    Package,
    PackageItem,
    PackageType,
    SelectedCustomization,
)
from menuman.signals import cart_line_removed, cart_lines_added

MILD = (SelectedCustomization("spice", ("mild",)),)


class TestSanitizeNote:
    def test_strips_angle_brackets_and_whitespace(self):
        assert sanitize_note("  no <onions> ") == "no onions"

    def test_blank_becomes_none(self):
        assert sanitize_note("  <> ") is None
        assert sanitize_note(None) is None


class TestCompose:
    """Tests for compose()."""

    def test_single_line_holds_full_quantity(self, doro_wat):
        lines = compose(doro_wat, 3, MILD, note="no onions")
        assert len(lines) == 1
        line = lines[0]
        assert line.item_id == "doro-wat"
        assert line.quantity == 3
        assert line.unit_price_q == 1899
        assert line.line_total_q == 5697
        assert line.note == "no onions"
        assert line.package_id is None

    def test_customized_unit_price(self, doro_wat):
        selections = (
            SelectedCustomization("spice", ("hot",)),
            SelectedCustomization("extras", ("egg",)),
        )
        line = compose(doro_wat, 1, selections)[0]
        assert line.unit_price_q == 1899 + 100 + 150

    def test_invalid_selections_rejected(self, doro_wat):
        with pytest.raises(MenuError) as exc:
            compose(doro_wat, 1, ())
        assert exc.value.code == "INVALID_SELECTION"
        assert exc.value.data["violations"][0]["code"] == "REQUIRED"

    def test_invalid_quantity(self, tibs):
        with pytest.raises(ComputationError):
            compose(tibs, 0)

    def test_line_ids_unique(self, tibs):
        ids = {compose(tibs, 1)[0].id for _ in range(50)}
        assert len(ids) == 50


class TestComposePackage:
    """Tests for compose_package()."""

    def test_one_line_per_member(self, family_feast, items_by_id):
        configuration = {"doro-wat": MemberConfiguration(2, MILD)}
        lines = compose_package(family_feast, items_by_id, configuration)

        assert [(line.item_id, line.quantity, line.unit_price_q) for line in lines] == [
            ("doro-wat", 2, 1899),
            ("sambusa", 1, 599),
        ]
        assert all(line.package_id == "family-feast" for line in lines)
        assert all(line.note == "From Family Feast package" for line in lines)

    def test_custom_note_replaces_default(self, family_feast, items_by_id):
        configuration = {"doro-wat": MemberConfiguration(2, MILD)}
        lines = compose_package(family_feast, items_by_id, configuration, note="Party")
        assert {line.note for line in lines} == {"Party"}

    def test_member_selections_validated(self, family_feast, items_by_id):
        with pytest.raises(MenuError) as exc:
            compose_package(family_feast, items_by_id, {"doro-wat": MemberConfiguration(2, ())})
        assert exc.value.code == "INVALID_SELECTION"
        assert exc.value.item_id == "doro-wat"

    def test_included_customizations_by_default(self, family_feast, items_by_id):
        lines = compose_package(family_feast, items_by_id)
        assert lines[0].selections == MILD
        assert lines[0].quantity == 2

    def test_charges_the_customized_total(self, items_by_id):
        """Lines for a package with a priced default match package_customized_total_q."""
        package = Package(
            "hot-feast",
            "Hot Feast",
            3999,
            PackageType.DAILY,
            items=(PackageItem("doro-wat", 2, ("spice:hot",)), PackageItem("sambusa")),
        )
        lines = compose_package(package, items_by_id)
        assert sum(line.line_total_q for line in lines) == 1999 * 2 + 599
        assert sum(line.line_total_q for line in lines) == package_customized_total_q(
            package, items_by_id
        )


class TestCart:
    """Tests for the Cart aggregate."""

    def test_identical_lines_merge(self, doro_wat):
        cart = Cart("s1")
        first = compose(doro_wat, 1, MILD)
        cart.add(first)
        stored = cart.add(compose(doro_wat, 2, MILD))

        assert len(cart.lines) == 1
        assert stored[0].id == first[0].id
        assert cart.lines[0].quantity == 3

    def test_different_note_does_not_merge(self, doro_wat):
        cart = Cart("s1")
        cart.add(compose(doro_wat, 1, MILD))
        cart.add(compose(doro_wat, 1, MILD, note="extra napkins"))
        assert len(cart.lines) == 2

    def test_different_selections_do_not_merge(self, doro_wat):
        cart = Cart("s1")
        cart.add(compose(doro_wat, 1, MILD))
        cart.add(compose(doro_wat, 1, (SelectedCustomization("spice", ("hot",)),)))
        assert len(cart.lines) == 2

    def test_duplicate_line_id_rejected(self):
        cart = Cart("s1")
        cart.add([CartLineItem("line-1", "tibs", 1, 2099)])
        with pytest.raises(MenuError) as exc:
            cart.add([CartLineItem("line-1", "sambusa", 1, 599)])
        assert exc.value.code == "DUPLICATE_LINE_ID"

    def test_totals(self, doro_wat, sambusa):
        cart = Cart("s1")
        cart.add(compose(doro_wat, 2, MILD))
        cart.add(compose(sambusa, 3))
        assert cart.subtotal_q == 1899 * 2 + 599 * 3
        assert cart.total_items == 5
        assert cart.has_items()

    def test_update_quantity(self, sambusa):
        cart = Cart("s1")
        line = cart.add(compose(sambusa, 1))[0]
        updated = cart.update_quantity(line.id, 4)
        assert updated.quantity == 4
        assert cart.subtotal_q == 599 * 4

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_update_quantity_to_zero_removes(self, sambusa, quantity):
        cart = Cart("s1")
        line = cart.add(compose(sambusa, 1))[0]
        assert cart.update_quantity(line.id, quantity) is None
        assert not cart.has_items()

    def test_remove_unknown_line(self):
        with pytest.raises(MenuError) as exc:
            Cart("s1").remove("nope")
        assert exc.value.code == "LINE_NOT_FOUND"

    def test_clear(self, sambusa):
        cart = Cart("s1")
        cart.add(compose(sambusa, 1))
        cart.clear()
        assert cart.subtotal_q == 0

    def test_repriced_line_not_merged(self, sambusa):
        """Units added at a new price keep that price on their own line."""
        cart = Cart("s1")
        cart.add(compose(sambusa, 1))
        cart.add(compose(replace(sambusa, base_price_q=999), 2))

        assert [(line.unit_price_q, line.quantity) for line in cart.lines] == [(599, 1), (999, 2)]
        assert cart.subtotal_q == 599 + 999 * 2

    def test_update_selections_reprices(self, doro_wat):
        cart = Cart("s1")
        line = cart.add(compose(doro_wat, 2, MILD, note="no onions"))[0]
        selections = (
            SelectedCustomization("spice", ("hot",)),
            SelectedCustomization("extras", ("egg",)),
        )

        assert cart.update_selections(line.id, doro_wat, selections) == []

        updated = cart.get_line(line.id)
        assert updated.selections == selections
        assert updated.unit_price_q == 1899 + 100 + 150
        assert updated.quantity == 2
        assert updated.note == "no onions"
        assert cart.subtotal_q == (1899 + 100 + 150) * 2

    def test_update_selections_invalid_leaves_line(self, doro_wat):
        cart = Cart("s1")
        line = cart.add(compose(doro_wat, 1, MILD))[0]

        violations = cart.update_selections(line.id, doro_wat, ())

        assert [v.code for v in violations] == ["REQUIRED"]
        assert cart.get_line(line.id) == line

    def test_update_selections_errors(self, doro_wat, sambusa):
        cart = Cart("s1")
        line = cart.add(compose(sambusa, 1))[0]
        with pytest.raises(MenuError) as exc:
            cart.update_selections("nope", sambusa, ())
        assert exc.value.code == "LINE_NOT_FOUND"
        with pytest.raises(MenuError) as exc:
            cart.update_selections(line.id, doro_wat, MILD)
        assert exc.value.code == "ITEM_MISMATCH"


class TestInMemoryCartStore:
    def test_load_missing_returns_empty_cart(self):
        cart = InMemoryCartStore().load("new")
        assert cart.session_key == "new"
        assert cart.lines == []

    def test_unsaved_changes_not_visible(self, sambusa):
        store = InMemoryCartStore()
        cart = store.load("s1")
        cart.add(compose(sambusa, 1))
        assert store.load("s1").lines == []
        store.save(cart)
        assert len(store.load("s1").lines) == 1


class TestCartComposer:
    """Tests for CartComposer."""

    def test_add_and_remove(self, sambusa):
        composer = CartComposer(InMemoryCartStore())
        line = composer.add("s1", compose(sambusa, 2))[0]
        assert composer.get("s1").subtotal_q == 1198

        removed = composer.remove("s1", line.id)
        assert removed.id == line.id
        assert not composer.get("s1").has_items()

    def test_update_quantity_rejects_bool(self, sambusa):
        composer = CartComposer(InMemoryCartStore())
        line = composer.add("s1", compose(sambusa, 1))[0]
        with pytest.raises(ComputationError):
            composer.update_quantity("s1", line.id, True)

    def test_sessions_are_isolated(self, sambusa, tibs):
        composer = CartComposer(InMemoryCartStore())
        composer.add("alice", compose(sambusa, 1))
        composer.add("bob", compose(tibs, 1))
        assert [line.item_id for line in composer.get("alice").lines] == ["sambusa"]
        assert [line.item_id for line in composer.get("bob").lines] == ["tibs"]

    def test_concurrent_adds_same_session(self, sambusa):
        """Concurrent writers for one session never lose an update."""
        composer = CartComposer(InMemoryCartStore())
        threads_count, adds_per_thread = 8, 25

        def worker():
            for _ in range(adds_per_thread):
                composer.add("shared", compose(sambusa, 1))

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        cart = composer.get("shared")
        assert len(cart.lines) == 1
        assert cart.total_items == threads_count * adds_per_thread

    def test_signals(self, sambusa):
        composer = CartComposer(InMemoryCartStore())
        added, removed = [], []

        def on_added(sender, session_key, lines, **kwargs):
            added.append((session_key, lines))

        def on_removed(sender, session_key, line, **kwargs):
            removed.append((session_key, line))

        cart_lines_added.connect(on_added)
        cart_line_removed.connect(on_removed)
        try:
            line = composer.add("s1", compose(sambusa, 1))[0]
            composer.update_quantity("s1", line.id, 0)
        finally:
            cart_lines_added.disconnect(on_added)
            cart_line_removed.disconnect(on_removed)

        assert len(added) == 1
        assert added[0][0] == "s1"
        assert added[0][1][0].id == line.id
        assert removed == [("s1", line)]

    def test_update_selections_saved(self, doro_wat):
        composer = CartComposer(InMemoryCartStore())
        line = composer.add("s1", compose(doro_wat, 1, MILD))[0]
        hot = (SelectedCustomization("spice", ("hot",)),)

        assert composer.update_selections("s1", line.id, doro_wat, hot) == []
        assert composer.get("s1").get_line(line.id).unit_price_q == 1999

    def test_update_selections_invalid_not_saved(self, doro_wat):
        composer = CartComposer(InMemoryCartStore())
        line = composer.add("s1", compose(doro_wat, 1, MILD))[0]

        violations = composer.update_selections("s1", line.id, doro_wat, ())

        assert violations
        assert composer.get("s1").get_line(line.id).selections == MILD


class TestSessionLocks:
    """Tests for SessionLocks."""

    def test_same_key_shares_lock_while_held(self):
        locks = SessionLocks()
        held = locks.for_session("s1")
        assert locks.for_session("s1") is held
        assert locks.for_session("s2") is not held
        assert len(locks) == 1

    def test_finished_sessions_leave_nothing(self, sambusa):
        locks = SessionLocks()
        composer = CartComposer(InMemoryCartStore(), locks)
        for n in range(200):
            session_key = f"session-{n}"
            composer.add(session_key, compose(sambusa, 1))
            composer.clear(session_key)
        gc.collect()
        assert len(locks) == 0

    def test_empty_locks_are_kept_by_composer(self):
        locks = SessionLocks()
        assert CartComposer(InMemoryCartStore(), locks).locks is locks
