"""
Tests for the checklist engine.
"""

from decimal import Decimal

import pytest

from baleman import warehouse
from baleman.exceptions import BaleError, DuplicateRequest, IneligibleBale, InvalidState, NotFound
from baleman.models import (
    Bale,
    BaleStatus,
    Checklist,
    ChecklistItem,
    ChecklistStatus,
    Grade,
    ModificationRequest,
    ProductType,
    RequestStatus,
)
from baleman.services.checklists import SelectionCriterion


pytestmark = pytest.mark.django_db


def positions(checklist):
    return list(checklist.items.order_by('position').values_list('position', flat=True))


class TestCreateChecklist:

    def test_new_checklist_is_empty_draft(self, checklist):
        assert checklist.status == ChecklistStatus.DRAFT
        assert checklist.items.count() == 0
        assert checklist.total_items == 0
        assert checklist.summary == {'lots': [], 'total_items': 0, 'total_weight': '0'}
        assert checklist.created_by == 'clerk-1'


class TestAddBales:
    """Tests for warehouse.add_bales()."""

    def test_reserves_and_appends(self, checklist, make_bale, clerk):
        b1, b2 = make_bale(), make_bale(gross='230.00')

        checklist = warehouse.add_bales(checklist.pk, [b1.pk, b2.pk], clerk)

        items = list(checklist.items.order_by('position'))
        assert [i.bale_id for i in items] == [b1.pk, b2.pk]
        assert positions(checklist) == [0, 1]
        assert set(Bale.objects.values_list('status', flat=True)) == {BaleStatus.RESERVED}
        assert checklist.total_items == 2
        assert checklist.total_weight == Decimal('475.00')

    def test_item_snapshot(self, checklist, make_bale, clerk, lot):
        bale = make_bale(grade=Grade.YAXSHI, strength=Decimal('30.10'))

        warehouse.add_bales(checklist.pk, [bale.pk], clerk)

        item = ChecklistItem.objects.get(bale=bale)
        assert item.qr_code == bale.qr_code
        assert item.lot_number == lot.number
        assert item.net_weight == Decimal('247.50')
        assert item.grade == Grade.YAXSHI
        assert item.quality_score == Decimal('30.10')

    def test_next_call_continues_positions(self, checklist, make_bale, clerk):
        warehouse.add_bales(checklist.pk, [make_bale().pk], clerk)
        checklist = warehouse.add_bales(checklist.pk, [make_bale().pk, make_bale().pk], clerk)

        assert positions(checklist) == [0, 1, 2]

    def test_duplicate_ids_reserved_once(self, checklist, make_bale, clerk):
        bale = make_bale()

        checklist = warehouse.add_bales(checklist.pk, [bale.pk, bale.pk], clerk)

        assert checklist.items.count() == 1

    def test_mixed_batch_rejected_entirely(self, checklist, make_bale, clerk):
        """Approved B1 + pending B2: nothing is reserved."""
        b1 = make_bale()
        b2 = make_bale(approve=False)

        with pytest.raises(IneligibleBale) as exc:
            warehouse.add_bales(checklist.pk, [b1.pk, b2.pk], clerk)

        b1.refresh_from_db()
        assert exc.value.bale_id == b2.pk
        assert exc.value.failures == {b2.pk: 'LAB_PENDING'}
        assert checklist.items.count() == 0
        assert b1.status == BaleStatus.IN_STOCK

    def test_failure_reasons(self, checklist, make_bale, clerk, analyst):
        rejected = make_bale(approve=False)
        warehouse.reject_lab_result(rejected.pk, analyst, reason='Short staple')
        other = warehouse.create_checklist('cust-2', 'ws-1', clerk)
        taken = make_bale()
        warehouse.add_bales(other.pk, [taken.pk], clerk)

        with pytest.raises(IneligibleBale) as exc:
            warehouse.add_bales(checklist.pk, [rejected.pk, taken.pk, 424242], clerk)

        assert exc.value.failures == {
            rejected.pk: 'LAB_REJECTED',
            taken.pk: 'ALREADY_RESERVED',
            424242: 'NOT_FOUND',
        }

    def test_bale_never_in_two_checklists(self, checklist, make_bale, clerk):
        bale = make_bale()
        other = warehouse.create_checklist('cust-2', 'ws-1', clerk)
        warehouse.add_bales(checklist.pk, [bale.pk], clerk)

        with pytest.raises(IneligibleBale):
            warehouse.add_bales(other.pk, [bale.pk], clerk)

        assert ChecklistItem.objects.filter(bale=bale).count() == 1

    def test_only_draft_accepts_bales(self, locked_checklist, make_bale, clerk):
        with pytest.raises(InvalidState) as exc:
            warehouse.add_bales(locked_checklist.pk, [make_bale().pk], clerk)

        assert exc.value.current == ChecklistStatus.LOCKED

    def test_batch_limit(self, checklist, clerk, settings):
        settings.BALEMAN = {'MAX_BATCH_SIZE': 2}

        with pytest.raises(BaleError) as exc:
            warehouse.add_bales(checklist.pk, [1, 2, 3], clerk)

        assert exc.value.code == 'BATCH_TOO_LARGE'

    def test_empty_batch(self, checklist, clerk):
        with pytest.raises(BaleError) as exc:
            warehouse.add_bales(checklist.pk, [], clerk)

        assert exc.value.code == 'INVALID_QUANTITY'


class TestAddBalesByCriteria:

    def test_picks_oldest_per_grade(self, checklist, make_bale, clerk, lot):
        make_bale(grade=Grade.ORTA)
        oliy = [make_bale(grade=Grade.OLIY) for _ in range(3)]

        checklist = warehouse.add_bales_by_criteria(
            checklist.pk, [SelectionCriterion(lot.pk, Grade.OLIY, 2)], clerk,
        )

        picked = list(checklist.items.order_by('position').values_list('bale_id', flat=True))
        assert picked == [oliy[0].pk, oliy[1].pk]

    def test_plain_tuples(self, checklist, make_bale, clerk, lot):
        make_bale()

        checklist = warehouse.add_bales_by_criteria(checklist.pk, [(lot.pk, None, 1)], clerk)

        assert checklist.total_items == 1

    def test_insufficient(self, checklist, make_bale, clerk, lot):
        make_bale()

        with pytest.raises(BaleError) as exc:
            warehouse.add_bales_by_criteria(checklist.pk, [(lot.pk, Grade.OLIY, 2)], clerk)

        assert exc.value.code == 'INSUFFICIENT_AVAILABLE'
        assert exc.value.data['available'] == 1
        assert checklist.items.count() == 0


class TestRemoveItem:

    def test_release_and_renumber(self, checklist, make_bale, clerk):
        bales = [make_bale() for _ in range(3)]
        warehouse.add_bales(checklist.pk, [b.pk for b in bales], clerk)
        middle = checklist.items.get(position=1)

        checklist = warehouse.remove_item(checklist.pk, middle.pk, clerk)

        bales[1].refresh_from_db()
        assert bales[1].status == BaleStatus.IN_STOCK
        assert positions(checklist) == [0, 1]
        assert list(checklist.items.order_by('position').values_list('bale_id', flat=True)) == [
            bales[0].pk, bales[2].pk,
        ]
        assert checklist.total_items == 2

    def test_released_bale_can_be_reserved_again(self, checklist, make_bale, clerk):
        bale = make_bale()
        warehouse.add_bales(checklist.pk, [bale.pk], clerk)
        item = checklist.items.get()
        warehouse.remove_item(checklist.pk, item.pk, clerk)

        other = warehouse.create_checklist('cust-2', 'ws-1', clerk)
        other = warehouse.add_bales(other.pk, [bale.pk], clerk)

        assert other.total_items == 1

    def test_locked_checklist_is_frozen(self, locked_checklist, clerk):
        item = locked_checklist.items.first()

        with pytest.raises(InvalidState):
            warehouse.remove_item(locked_checklist.pk, item.pk, clerk)


class TestConfirmAndLock:

    def test_confirm_empty_rejected(self, checklist, clerk):
        with pytest.raises(InvalidState) as exc:
            warehouse.confirm(checklist.pk, clerk)

        assert exc.value.data['reason'] == 'EMPTY'

    def test_lock_flow(self, checklist, make_bale, clerk):
        warehouse.add_bales(checklist.pk, [make_bale().pk], clerk)

        confirmed = warehouse.confirm(checklist.pk, clerk)
        locked = warehouse.lock(checklist.pk, clerk)

        assert confirmed.confirmed_by == 'clerk-1'
        assert locked.status == ChecklistStatus.LOCKED
        assert locked.locked_at is not None

    def test_lock_twice_fails(self, locked_checklist, clerk):
        with pytest.raises(InvalidState) as exc:
            warehouse.lock(locked_checklist.pk, clerk)

        assert exc.value.current == ChecklistStatus.LOCKED

    def test_lock_requires_confirmation(self, checklist, make_bale, clerk):
        warehouse.add_bales(checklist.pk, [make_bale().pk], clerk)

        with pytest.raises(InvalidState):
            warehouse.lock(checklist.pk, clerk)

    def test_bales_stay_reserved(self, locked_checklist):
        statuses = Bale.objects.filter(checklist_items__checklist=locked_checklist).values_list('status', flat=True)

        assert set(statuses) == {BaleStatus.RESERVED}


class TestScanBale:
    """Tests for warehouse.scan_bale()."""

    def test_marks_item_scanned(self, locked_checklist, clerk):
        item = locked_checklist.items.get(position=1)

        checklist = warehouse.scan_bale(locked_checklist.pk, item.qr_code, clerk)

        item.refresh_from_db()
        assert item.scanned_at is not None
        assert item.scanned_by == 'clerk-1'
        assert checklist.scanned_items == 1
        assert not checklist.fully_scanned

    def test_all_items_scanned(self, scanned_checklist):
        assert scanned_checklist.scanned_items == 2
        assert scanned_checklist.fully_scanned

    def test_scanning_twice_fails(self, locked_checklist, clerk):
        qr_code = locked_checklist.items.get(position=0).qr_code
        warehouse.scan_bale(locked_checklist.pk, qr_code, clerk)

        with pytest.raises(BaleError) as exc:
            warehouse.scan_bale(locked_checklist.pk, qr_code, clerk)

        assert exc.value.code == 'ALREADY_SCANNED'

    def test_bale_from_another_checklist(self, locked_checklist, make_bale, clerk):
        stranger = make_bale()

        with pytest.raises(NotFound) as exc:
            warehouse.scan_bale(locked_checklist.pk, stranger.qr_code, clerk)

        assert exc.value.data['qr_code'] == stranger.qr_code
        assert locked_checklist.scanned_items == 0

    def test_only_locked_checklists(self, checklist, make_bale, clerk):
        bale = make_bale()
        warehouse.add_bales(checklist.pk, [bale.pk], clerk)
        warehouse.confirm(checklist.pk, clerk)

        with pytest.raises(InvalidState) as exc:
            warehouse.scan_bale(checklist.pk, bale.qr_code, clerk)

        assert exc.value.current == ChecklistStatus.CONFIRMED

    def test_empty_checklist_is_not_fully_scanned(self, checklist):
        assert not checklist.fully_scanned


class TestRequestModification:
    """Tests for warehouse.request_modification()."""

    def test_request_freezes_snapshot(self, locked_checklist, clerk):
        request = warehouse.request_modification(locked_checklist.pk, 'Customer wants ORTA', clerk)

        locked_checklist.refresh_from_db()
        assert locked_checklist.status == ChecklistStatus.MODIFICATION_REQUESTED
        assert request.status == RequestStatus.PENDING
        assert request.requested_by_role == 'warehouse'
        assert request.checklist_summary == {
            'total_bales': 2,
            'total_weight': '485.00',
            'lots_count': 1,
            'average_weight': '242.50',
        }

    def test_second_request_is_duplicate(self, locked_checklist, clerk):
        first = warehouse.request_modification(locked_checklist.pk, 'Swap one bale', clerk)

        with pytest.raises(DuplicateRequest) as exc:
            warehouse.request_modification(locked_checklist.pk, 'Swap two bales', clerk)

        assert exc.value.data['request_id'] == first.pk
        assert ModificationRequest.objects.count() == 1

    def test_only_from_locked(self, checklist, clerk):
        with pytest.raises(InvalidState):
            warehouse.request_modification(checklist.pk, 'Too early', clerk)

    def test_reason_required(self, locked_checklist, clerk):
        with pytest.raises(BaleError) as exc:
            warehouse.request_modification(locked_checklist.pk, '   ', clerk)

        assert exc.value.code == 'REASON_REQUIRED'

    def test_dispatched_checklist_cannot_be_modified(self, scanned_checklist, clerk, driver):
        warehouse.create_shipment(scanned_checklist.pk, driver, 'WB-1', clerk)

        with pytest.raises(InvalidState) as exc:
            warehouse.request_modification(scanned_checklist.pk, 'Too late', clerk)

        assert exc.value.data['reason'] == 'DISPATCHED'


class TestDeleteChecklist:

    def test_delete_draft_releases_bales(self, checklist, make_bale, clerk, admin_actor):
        bales = [make_bale(), make_bale()]
        warehouse.add_bales(checklist.pk, [b.pk for b in bales], clerk)

        released = warehouse.delete_checklist(checklist.pk, admin_actor)

        assert released == 2
        assert not Checklist.objects.filter(pk=checklist.pk).exists()
        assert set(Bale.objects.values_list('status', flat=True)) == {BaleStatus.IN_STOCK}

    def test_locked_cannot_be_deleted(self, locked_checklist, admin_actor):
        with pytest.raises(InvalidState):
            warehouse.delete_checklist(locked_checklist.pk, admin_actor)


class TestSummary:

    def test_per_lot_breakdown(self, checklist, make_bale, clerk, producer, lot):
        other = warehouse.create_lot(ProductType.TOLA, producer)
        bales = [
            make_bale(grade=Grade.OLIY, strength=Decimal('30')),
            make_bale(grade=Grade.ORTA, strength=Decimal('28')),
            make_bale(target=other),
        ]

        checklist = warehouse.add_bales(checklist.pk, [b.pk for b in bales], clerk)

        first, second = checklist.summary['lots']
        assert first['lot_number'] == lot.number
        assert first['total_bales'] == 2
        assert first['grades'] == {'OLIY': 1, 'ORTA': 1}
        assert first['average_quality'] == '29.00'
        assert second['average_quality'] is None
        assert checklist.summary['total_items'] == 3


