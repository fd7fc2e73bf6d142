#!/usr/bin/env python3
"""Tests for the visit workflow: drafts, completion and deletion."""

from datetime import date

import pytest

from garage import (
    Config,
    ConsistencyError,
    NotFoundError,
    Reason,
    SparePart,
    ValidationError,
    VisitStatus,
    build_services,
)


def draft_with_parts(shop, *lines):
    """Saved draft for customer 1 / vehicle 1 with (part_id, qty) lines."""
    editor = shop.workflow.start_visit(1, 1)
    editor.add_service("Oil change", 50)
    for part_id, qty in lines:
        editor.add_part_by_id(part_id, qty)
    assert editor.save()
    return editor


# =============================================================================
# Drafts
# =============================================================================


class TestStartVisit:
    """Tests for VisitWorkflow.start_visit."""

    def test_starts_draft(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        assert editor.visit.status == VisitStatus.DRAFT
        assert editor.visit.id is None
        assert editor.visit.created_at == "2025-06-01T12:00:00Z"

    @pytest.mark.parametrize("customer_id,vehicle_id", [(None, 1), (1, None), ("", 1)])
    def test_requires_customer_and_vehicle(self, shop, customer_id, vehicle_id):
        with pytest.raises(ValidationError) as exc:
            shop.workflow.start_visit(customer_id, vehicle_id)
        assert exc.value.reason == Reason.INCOMPLETE_SELECTION


class TestLineEdits:
    """Tests for VisitEditor line editing and totals."""

    def test_add_service_parses_cost(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_service("Alignment", "30.5")
        assert editor.visit.services[0].cost == 30.5
        assert editor.visit.final_total == 30.5

    def test_add_service_rejects_bad_cost(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(ValidationError) as exc:
            editor.add_service("Alignment", "lots")
        assert exc.value.reason == Reason.INVALID_NUMBER
        assert editor.visit.services == []

    def test_add_service_requires_name(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(ValidationError) as exc:
            editor.add_service("", 10)
        assert exc.value.reason == Reason.MISSING_FIELD

    def test_add_part_snapshots_name_and_price(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        line = editor.add_part_by_id(1, 2)
        assert (line.name, line.price, line.qty) == ("Oil filter", 12.5, 2)
        part = shop.ledger.get_part(1)
        part.price = 99
        shop.ledger.save_part(part)
        assert editor.visit.parts[0].price == 12.5

    def test_adding_same_part_raises_qty(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_part_by_id(1)
        editor.add_part_by_id(1, 2)
        assert len(editor.visit.parts) == 1
        assert editor.visit.parts[0].qty == 3

    def test_out_of_stock_rejected(self, shop):
        shop.ledger.adjust_stock(2, -2)
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(ValidationError) as exc:
            editor.add_part_by_id(2)
        assert exc.value.reason == Reason.OUT_OF_STOCK
        assert editor.visit.parts == []

    def test_stock_limit_rejected(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_part_by_id(2, 2)
        with pytest.raises(ValidationError) as exc:
            editor.add_part_by_id(2)
        assert exc.value.reason == Reason.STOCK_LIMIT
        assert editor.visit.parts[0].qty == 2

    def test_stock_check_uses_given_snapshot(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        stale = shop.ledger.get_part(2)
        shop.ledger.adjust_stock(2, -2)
        editor.add_part(stale, 2)
        assert editor.visit.parts[0].qty == 2

    def test_fractional_qty_rejected(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(ValidationError) as exc:
            editor.add_part(shop.ledger.get_part(1), 1.5)
        assert exc.value.reason == Reason.INVALID_NUMBER
        assert editor.visit.parts == []

    def test_unknown_part(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(NotFoundError) as exc:
            editor.add_part_by_id(99)
        assert exc.value.reason == Reason.PART_NOT_FOUND

    def test_remove_lines(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_service("Oil change", 50)
        editor.add_part_by_id(1)
        editor.remove_service(0)
        editor.remove_part(0)
        assert editor.visit.final_total == 0
        with pytest.raises(IndexError):
            editor.remove_part(0)

    def test_totals_use_configured_rate(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_service("Labor A", 50)
        editor.add_service("Labor B", 30)
        editor.add_part(SparePart(part_number="F", name="Filter", price=10, stock=5, id=9), 3)
        editor.set_discount("5")
        editor.set_tax_enabled(True)
        assert editor.visit.total_cost == 110
        assert editor.visit.tax == pytest.approx(16.5)
        assert editor.visit.final_total == pytest.approx(121.5)


class TestScheduleNextVisit:
    """Tests for VisitEditor.schedule_next_visit."""

    def test_explicit_date(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        nv = editor.schedule_next_visit("Oil change", on="2025-09-01", notes="synthetic")
        assert nv.date == "2025-09-01"
        assert nv.notes == "synthetic"

    def test_months_from_today(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        nv = editor.schedule_next_visit("Oil change", after_months=3)
        assert nv.date == "2025-09-01"

    def test_fractional_months(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        nv = editor.schedule_next_visit("Tire rotation", after_months=1.5)
        assert nv.date == date(2025, 7, 16).isoformat()

    def test_needs_date_or_months(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        with pytest.raises(ValidationError):
            editor.schedule_next_visit("Oil change")

    def test_clear(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.schedule_next_visit("Oil change", after_months=6)
        editor.clear_next_visit()
        assert editor.visit.next_visit is None


# =============================================================================
# Saving and ids
# =============================================================================


class TestVisitIds:
    """Tests for visit numbering."""

    def test_first_save_assigns_padded_id(self, shop):
        editor = draft_with_parts(shop)
        assert editor.visit.id == "00001"
        assert shop.records.get_visit("00001").status == VisitStatus.DRAFT

    def test_resave_keeps_id(self, shop):
        editor = draft_with_parts(shop)
        editor.add_service("Wash", 10)
        assert editor.save()
        assert editor.visit.id == "00001"
        assert len(shop.records.get_visits()) == 1

    def test_ids_never_reused_after_delete(self, shop):
        first = draft_with_parts(shop)
        second = draft_with_parts(shop)
        assert (first.visit.id, second.visit.id) == ("00001", "00002")
        assert shop.workflow.delete_visit("00002")
        third = draft_with_parts(shop)
        assert third.visit.id == "00003"

    def test_counter_seeded_from_existing_visits(self, store, clock, config):
        store.put("visits", [{"id": "00041", "customerId": 1, "vehicleId": 1,
                              "status": "Draft", "services": [], "parts": []}])
        services = build_services(config, store=store, clock=clock)
        editor = services.workflow.start_visit(1, 1)
        editor.save()
        assert editor.visit.id == "00042"

    def test_id_grows_past_width(self, store, clock, tmp_path):
        store.put("sequences", [{"id": "visits", "value": 99999}])
        services = build_services(Config(data_dir=tmp_path), store=store, clock=clock)
        editor = services.workflow.start_visit(1, 1)
        editor.save()
        assert editor.visit.id == "100000"

    def test_failed_save_leaves_visit_unsaved(self, shop, store):
        store.fail_on.add("visits")
        editor = shop.workflow.start_visit(1, 1)
        assert editor.save() is False
        assert editor.visit.id is None
        store.fail_on.clear()
        assert shop.records.get_visits() == []


# =============================================================================
# Completion
# =============================================================================


class TestComplete:
    """Tests for VisitEditor.complete."""

    def test_debits_stock_once(self, shop, clock):
        editor = draft_with_parts(shop, (1, 3), (2, 1))
        clock.advance(hours=2)
        assert editor.complete()
        assert shop.ledger.get_part(1).stock == 7
        assert shop.ledger.get_part(2).stock == 1
        stored = shop.records.get_visit(editor.visit.id)
        assert stored.status == VisitStatus.COMPLETED
        assert stored.completed_at == "2025-06-01T14:00:00Z"

    def test_draft_reserves_nothing(self, shop):
        draft_with_parts(shop, (1, 3))
        assert shop.ledger.get_part(1).stock == 10

    def test_complete_unsaved_visit_assigns_id(self, shop):
        editor = shop.workflow.start_visit(1, 1)
        editor.add_part_by_id(1, 1)
        assert editor.complete()
        assert editor.visit.id == "00001"
        assert shop.ledger.get_part(1).stock == 9

    def test_insufficient_stock_rejects_and_changes_nothing(self, shop):
        editor = draft_with_parts(shop, (1, 2), (2, 2))
        shop.ledger.adjust_stock(2, -1)
        with pytest.raises(ValidationError) as exc:
            editor.complete()
        assert exc.value.reason == Reason.INSUFFICIENT_STOCK
        assert exc.value.subject == "Brake pads"
        assert editor.visit.status == VisitStatus.DRAFT
        assert shop.ledger.get_part(1).stock == 10
        assert shop.ledger.get_part(2).stock == 1
        assert shop.records.get_visit(editor.visit.id).status == VisitStatus.DRAFT

    def test_deleted_part_rejects(self, shop):
        editor = draft_with_parts(shop, (2, 1))
        shop.ledger.delete_part(2)
        with pytest.raises(NotFoundError):
            editor.complete()

    def test_cannot_complete_twice(self, shop):
        editor = draft_with_parts(shop, (1, 1))
        editor.complete()
        with pytest.raises(ValidationError) as exc:
            editor.complete()
        assert exc.value.reason == Reason.VISIT_COMPLETED
        assert shop.ledger.get_part(1).stock == 9

    def test_second_editor_cannot_complete_again(self, shop):
        draft = draft_with_parts(shop, (1, 2))
        first = shop.workflow.open_visit(draft.visit.id)
        second = shop.workflow.open_visit(draft.visit.id)
        assert first.complete()
        with pytest.raises(ValidationError) as exc:
            second.complete()
        assert exc.value.reason == Reason.VISIT_COMPLETED
        assert second.visit.status == VisitStatus.DRAFT
        assert shop.ledger.get_part(1).stock == 8

    def test_stale_editor_cannot_overwrite_completed(self, shop):
        draft = draft_with_parts(shop, (1, 1))
        stale = shop.workflow.open_visit(draft.visit.id)
        assert shop.workflow.complete_visit(draft.visit.id)
        stale.add_service("Extra", 5)
        with pytest.raises(ValidationError) as exc:
            stale.save()
        assert exc.value.reason == Reason.VISIT_COMPLETED
        stored = shop.records.get_visit(draft.visit.id)
        assert stored.status == VisitStatus.COMPLETED
        assert [s.name for s in stored.services] == ["Oil change"]

    def test_completed_visit_is_read_only(self, shop):
        editor = draft_with_parts(shop, (1, 1))
        editor.complete()
        with pytest.raises(ValidationError):
            editor.add_service("Extra", 5)

    def test_complete_visit_by_id(self, shop):
        editor = draft_with_parts(shop, (1, 2))
        assert shop.workflow.complete_visit(editor.visit.id)
        assert shop.ledger.get_part(1).stock == 8

    def test_failed_commit_rolls_back(self, shop, store):
        editor = draft_with_parts(shop, (1, 2))
        store.fail_on.add("spare_parts")
        assert editor.complete() is False
        store.fail_on.clear()
        assert editor.visit.status == VisitStatus.DRAFT
        assert editor.visit.completed_at is None
        assert shop.records.get_visit(editor.visit.id).status == VisitStatus.DRAFT
        assert shop.ledger.get_part(1).stock == 10

    def test_failed_rollback_raises(self, shop, store):
        editor = draft_with_parts(shop, (1, 2))
        store.fail_all_after = len(store.puts) + 1
        with pytest.raises(ConsistencyError):
            editor.complete()


# =============================================================================
# Deletion and listing
# =============================================================================


class TestDeleteVisit:
    """Tests for visit deletion."""

    def test_delete_draft_leaves_stock(self, shop):
        editor = draft_with_parts(shop, (1, 3))
        assert editor.delete()
        assert shop.records.get_visit(editor.visit.id) is None
        assert shop.ledger.get_part(1).stock == 10

    def test_completed_visit_cannot_be_deleted(self, shop):
        editor = draft_with_parts(shop, (1, 1))
        editor.complete()
        with pytest.raises(ValidationError) as exc:
            shop.workflow.delete_visit(editor.visit.id)
        assert exc.value.reason == Reason.VISIT_COMPLETED
        assert shop.records.get_visit(editor.visit.id) is not None

    def test_stale_editor_cannot_delete_completed(self, shop):
        draft = draft_with_parts(shop, (1, 1))
        stale = shop.workflow.open_visit(draft.visit.id)
        assert shop.workflow.complete_visit(draft.visit.id)
        with pytest.raises(ValidationError) as exc:
            stale.delete()
        assert exc.value.reason == Reason.VISIT_COMPLETED
        assert shop.records.get_visit(draft.visit.id) is not None

    def test_unsaved_delete_is_noop(self, shop):
        assert shop.workflow.start_visit(1, 1).delete()

    def test_unknown_visit(self, shop):
        with pytest.raises(NotFoundError) as exc:
            shop.workflow.delete_visit("00077")
        assert exc.value.reason == Reason.VISIT_NOT_FOUND


class TestOpenVisits:
    """Tests for VisitWorkflow.open_visits and open_visit."""

    def test_lists_drafts_newest_first(self, shop, clock):
        first = draft_with_parts(shop)
        clock.advance(hours=1)
        second = draft_with_parts(shop)
        clock.advance(hours=1)
        done = draft_with_parts(shop, (1, 1))
        done.complete()

        listed = shop.workflow.open_visits()
        assert [v.id for v, _, _ in listed] == [second.visit.id, first.visit.id]
        _, customer, vehicle = listed[0]
        assert customer.name == "Alice"
        assert vehicle.plate_number == "ABC-123"

    def test_dangling_refs_resolve_to_placeholders(self, shop):
        editor = shop.workflow.start_visit(7, 8)
        editor.save()
        _, customer, vehicle = shop.workflow.open_visits()[0]
        assert customer.name == "Unknown"
        assert vehicle.plate_number == "?"

    def test_open_visit_returns_copy(self, shop):
        draft_with_parts(shop)
        editor = shop.workflow.open_visit("00001")
        editor.add_service("Wash", 10)
        assert len(shop.records.get_visit("00001").services) == 1
