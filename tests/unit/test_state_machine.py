from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from leasing_service.app.services.billing.exceptions import (
    InvalidReadingError, InvalidTransitionError, PendingItemsError
)
from leasing_service.app.services.billing.invoice_builder import build_invoice
from leasing_service.app.services.billing.state_machine import (
    confirm_invoice, confirm_reading, mark_paid, pending_items, void_invoice
)
from tests.factories import make_charge, make_lease

NOW = datetime(2024, 2, 3, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def lease():
    return make_lease(charges=[
        make_charge("Internet", fixed_amount_cents=5000),
        make_charge("Water", "metered", unit_price_cents=500, unit_name="m3"),
    ])


@pytest.fixture
def invoice(lease):
    water = lease.charges[1]
    return build_invoice(lease, date(2024, 2, 1),
                         previous_readings={water.id: Decimal(100)})


def water_item(invoice):
    return next(i for i in invoice.items if i.name == "Water")


def assert_total_invariant(invoice):
    assert invoice.total_amount_cents == sum(
        i.amount_cents for i in invoice.items if i.amount_cents is not None)


class TestConfirmReading:
    def test_confirms_metered_item_and_updates_total(self, invoice):
        item = confirm_reading(water_item(invoice), meter_end=142, now=NOW)

        assert item.quantity == Decimal(42)
        assert item.amount_cents == 21000
        assert item.status == "confirmed"
        assert item.meter_start == Decimal(100)
        assert item.meter_end == Decimal(142)
        assert item.confirmed_at == NOW
        assert invoice.total_amount_cents == 500000 + 5000 + 21000
        assert_total_invariant(invoice)

    def test_supplied_meter_start_overrides_carried_value(self, invoice):
        item = confirm_reading(water_item(invoice), meter_end=Decimal("12.5"), meter_start=Decimal("10"))
        assert item.quantity == Decimal("2.5")
        assert item.amount_cents == 1250

    def test_fractional_amount_rounds_half_away_from_zero(self, lease):
        lease.charges[1].unit_price_cents = 3
        invoice = build_invoice(lease, date(2024, 2, 1))
        item = confirm_reading(water_item(invoice), meter_end=Decimal("1.5"), meter_start=0)
        assert item.amount_cents == 5  # 4.5

    def test_reading_below_start_is_rejected_without_mutation(self, invoice):
        item = water_item(invoice)
        total_before = invoice.total_amount_cents

        with pytest.raises(InvalidReadingError):
            confirm_reading(item, meter_end=90)

        assert item.status == "pending_reading"
        assert item.amount_cents is None
        assert item.meter_end is None
        assert item.meter_start == Decimal(100)
        assert invoice.total_amount_cents == total_before

    def test_unknown_meter_start_must_be_supplied(self, lease):
        water = lease.charges[1]
        invoice = build_invoice(lease, date(2024, 2, 1), previous_readings={water.id: None})
        item = water_item(invoice)
        assert item.meter_start is None

        with pytest.raises(InvalidReadingError):
            confirm_reading(item, meter_end=142)
        assert item.status == "pending_reading"
        assert item.amount_cents is None

        confirm_reading(item, meter_end=142, meter_start=100)
        assert item.amount_cents == 21000

    def test_confirmed_item_is_immutable(self, invoice):
        item = confirm_reading(water_item(invoice), meter_end=142)
        with pytest.raises(InvalidReadingError):
            confirm_reading(item, meter_end=150)
        assert item.amount_cents == 21000

    def test_fixed_item_takes_no_reading(self, invoice):
        with pytest.raises(InvalidReadingError):
            confirm_reading(invoice.items[0], meter_end=10)

    def test_negative_reading_is_rejected(self, invoice):
        with pytest.raises(InvalidReadingError):
            confirm_reading(water_item(invoice), meter_end=5, meter_start=-1)

    def test_voided_invoice_rejects_readings(self, invoice):
        void_invoice(invoice, now=NOW)
        with pytest.raises(InvalidTransitionError):
            confirm_reading(water_item(invoice), meter_end=142)


class TestInvoiceTransitions:
    def test_confirm_with_pending_items_raises(self, invoice):
        assert pending_items(invoice)
        with pytest.raises(PendingItemsError):
            confirm_invoice(invoice, now=NOW)
        assert invoice.status == "draft"
        assert invoice.history == []

    def test_full_lifecycle_records_history(self, invoice):
        confirm_reading(water_item(invoice), meter_end=142)
        confirm_invoice(invoice, now=NOW, actor="user-1")
        assert invoice.status == "issued"
        assert invoice.issued_at == NOW
        assert invoice.total_amount_cents == 526000

        mark_paid(invoice, now=NOW, actor="user-1")
        assert invoice.status == "paid"
        assert invoice.paid_at == NOW

        assert [(h.sequence, h.from_status, h.to_status) for h in invoice.history] == [
            (0, "draft", "issued"), (1, "issued", "paid")]
        assert {h.changed_by for h in invoice.history} == {"user-1"}

    def test_mark_paid_on_draft_raises(self, invoice):
        with pytest.raises(InvalidTransitionError):
            mark_paid(invoice)
        assert invoice.status == "draft"
        assert invoice.paid_at is None

    @pytest.mark.parametrize("final", ["paid", "void"])
    def test_terminal_states_reject_everything(self, invoice, final):
        confirm_reading(water_item(invoice), meter_end=142)
        confirm_invoice(invoice)
        (mark_paid if final == "paid" else void_invoice)(invoice)

        for transition in (confirm_invoice, mark_paid, void_invoice):
            with pytest.raises(InvalidTransitionError):
                transition(invoice)
        assert invoice.status == final

    def test_void_draft_and_issued(self, lease, invoice):
        void_invoice(invoice, now=NOW)
        assert invoice.status == "void"
        assert invoice.voided_at == NOW

        issued = build_invoice(lease, date(2024, 3, 1))
        confirm_reading(water_item(issued), meter_end=10)
        confirm_invoice(issued)
        void_invoice(issued)
        assert issued.status == "void"

    def test_confirm_twice_raises(self, lease):
        invoice = build_invoice(make_lease(), date(2024, 1, 1))
        confirm_invoice(invoice)
        with pytest.raises(InvalidTransitionError):
            confirm_invoice(invoice)
