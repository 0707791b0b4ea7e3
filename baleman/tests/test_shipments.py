"""
Tests for the shipment dispatcher.
"""

from decimal import Decimal

import pytest

from baleman import warehouse
from baleman.exceptions import BaleError, InvalidState, InvalidTransition, NotFound
from baleman.models import Bale, BaleStatus, Lot, ShipmentStatus


pytestmark = pytest.mark.django_db


def bale_statuses(checklist):
    return set(
        Bale.objects.filter(checklist_items__checklist=checklist).values_list('status', flat=True)
    )


@pytest.fixture
def shipment(scanned_checklist, driver, clerk):
    return warehouse.create_shipment(
        scanned_checklist.pk, driver, 'WB-2024-001', clerk,
        documents={'waybill': True, 'invoice': True},
    )


class TestCreateShipment:
    """Tests for warehouse.create_shipment()."""

    def test_ships_reserved_bales(self, shipment, locked_checklist):
        assert shipment.status == ShipmentStatus.PENDING
        assert shipment.total_items == 2
        assert shipment.total_weight == Decimal('485.00')
        assert bale_statuses(locked_checklist) == {BaleStatus.SHIPPED}

    def test_tracking_and_driver(self, shipment):
        assert shipment.tracking_number.startswith('TRK-')
        assert shipment.driver_name == 'Rustam Karimov'
        assert shipment.customer_id == 'cust-1'
        assert shipment.documents == {
            'waybill': True, 'invoice': True, 'packing': False, 'quality': False,
        }
        assert not shipment.documents_ready
        assert [h['status'] for h in shipment.status_history] == ['pending']

    def test_tracking_prefix_from_settings(self, scanned_checklist, driver, clerk, settings):
        settings.BALEMAN = {'TRACKING_PREFIX': 'UZB'}

        shipment = warehouse.create_shipment(scanned_checklist.pk, driver, 'WB-9', clerk)

        assert shipment.tracking_number.startswith('UZB-')

    def test_requires_locked_checklist(self, checklist, make_bale, driver, clerk):
        warehouse.add_bales(checklist.pk, [make_bale().pk], clerk)
        warehouse.confirm(checklist.pk, clerk)

        with pytest.raises(InvalidState) as exc:
            warehouse.create_shipment(checklist.pk, driver, 'WB-1', clerk)

        assert exc.value.current == 'confirmed'

    def test_requires_every_bale_scanned(self, locked_checklist, driver, clerk):
        first = locked_checklist.items.get(position=0)
        warehouse.scan_bale(locked_checklist.pk, first.qr_code, clerk)

        with pytest.raises(InvalidState) as exc:
            warehouse.create_shipment(locked_checklist.pk, driver, 'WB-1', clerk)

        assert exc.value.data['reason'] == 'NOT_SCANNED'
        assert exc.value.data['scanned'] == 1
        assert exc.value.data['items'] == 2
        assert bale_statuses(locked_checklist) == {BaleStatus.RESERVED}

    def test_only_one_active_shipment(self, shipment, locked_checklist, driver, clerk):
        with pytest.raises(InvalidState) as exc:
            warehouse.create_shipment(locked_checklist.pk, driver, 'WB-2', clerk)

        assert exc.value.data['shipment_id'] == shipment.pk

    def test_waybill_required(self, locked_checklist, driver, clerk):
        with pytest.raises(BaleError) as exc:
            warehouse.create_shipment(locked_checklist.pk, driver, '', clerk)

        assert exc.value.code == 'WAYBILL_REQUIRED'

    def test_totals_are_frozen(self, shipment):
        shipment.total_items = 5

        with pytest.raises(ValueError):
            shipment.save()

    def test_lot_counters_unchanged_by_shipping(self, shipment, lot):
        lot.refresh_from_db()

        assert lot.used == 2
        assert warehouse.audit_lot_counters() == []


class TestShipmentStatus:
    """Tests for warehouse.update_shipment_status()."""

    def test_forward_steps(self, shipment, clerk):
        for status in (ShipmentStatus.PREPARING, ShipmentStatus.READY, ShipmentStatus.SHIPPED):
            shipment = warehouse.update_shipment_status(shipment.pk, status, clerk)

        assert shipment.status == ShipmentStatus.SHIPPED
        assert shipment.shipped_at is not None
        assert [h['status'] for h in shipment.status_history] == [
            'pending', 'preparing', 'ready', 'shipped',
        ]

    def test_skipping_a_step_fails(self, shipment, clerk):
        with pytest.raises(InvalidTransition) as exc:
            warehouse.update_shipment_status(shipment.pk, ShipmentStatus.SHIPPED, clerk)

        assert exc.value.data['current'] == ShipmentStatus.PENDING
        assert exc.value.data['requested'] == ShipmentStatus.SHIPPED

    def test_backwards_fails(self, shipment, clerk):
        warehouse.update_shipment_status(shipment.pk, ShipmentStatus.PREPARING, clerk)

        with pytest.raises(InvalidTransition):
            warehouse.update_shipment_status(shipment.pk, ShipmentStatus.PENDING, clerk)

    def test_cancel_returns_bales_to_reserved(self, shipment, locked_checklist, driver, clerk):
        shipment = warehouse.update_shipment_status(shipment.pk, ShipmentStatus.CANCELLED, clerk, notes='Truck broke down')

        assert shipment.cancelled_at is not None
        assert bale_statuses(locked_checklist) == {BaleStatus.RESERVED}

        again = warehouse.create_shipment(locked_checklist.pk, driver, 'WB-2024-002', clerk)
        assert again.status == ShipmentStatus.PENDING
        assert bale_statuses(locked_checklist) == {BaleStatus.SHIPPED}

    def test_cannot_cancel_after_shipping(self, shipment, clerk):
        for status in (ShipmentStatus.PREPARING, ShipmentStatus.READY, ShipmentStatus.SHIPPED):
            warehouse.update_shipment_status(shipment.pk, status, clerk)

        with pytest.raises(InvalidTransition):
            warehouse.update_shipment_status(shipment.pk, ShipmentStatus.CANCELLED, clerk)


class TestCompleteShipment:

    def test_records_delivery(self, shipment, clerk):
        for status in (ShipmentStatus.PREPARING, ShipmentStatus.READY, ShipmentStatus.SHIPPED):
            warehouse.update_shipment_status(shipment.pk, status, clerk)

        shipment = warehouse.complete_shipment(
            shipment.pk, clerk, recipient_name='D. Yusupova', signature='data:image/png;base64,AAA',
        )

        assert shipment.status == ShipmentStatus.DELIVERED
        assert shipment.delivered_at is not None
        assert shipment.recipient_name == 'D. Yusupova'

    def test_only_from_shipped(self, shipment, clerk):
        with pytest.raises(InvalidState) as exc:
            warehouse.complete_shipment(shipment.pk, clerk)

        assert exc.value.current == ShipmentStatus.PENDING


class TestTrackShipment:

    def test_by_tracking_number(self, shipment):
        assert warehouse.track_shipment(shipment.tracking_number) == shipment

    def test_by_waybill(self, shipment):
        assert warehouse.track_shipment('WB-2024-001') == shipment

    def test_unknown_number(self, db):
        with pytest.raises(NotFound):
            warehouse.track_shipment('TRK-NOPE')


class TestReturnBale:

    def test_shipped_bale_returned_frees_slot(self, shipment, locked_checklist, clerk, lot):
        bale = Bale.objects.filter(checklist_items__checklist=locked_checklist).first()

        bale = warehouse.return_bale(bale.pk, 'Moisture complaint', clerk)

        lot = Lot.objects.get(pk=lot.pk)
        assert bale.status == BaleStatus.RETURNED
        assert lot.used == 1
