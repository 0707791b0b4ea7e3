"""
Tests for the lab gate.
"""

from decimal import Decimal

import pytest

from baleman import warehouse
from baleman.exceptions import BaleError, InvalidState, NotFound
from baleman.models import Bale, Grade, LabResult, LabStatus


pytestmark = pytest.mark.django_db


class TestRecordLabResult:
    """Tests for warehouse.record_lab_result()."""

    def test_result_starts_pending(self, make_bale, analyst):
        bale = make_bale(grade=None)

        result = warehouse.record_lab_result(
            bale.pk, Grade.YAXSHI, analyst, moisture=Decimal('8.5'), strength=Decimal('29.4'),
        )

        bale.refresh_from_db()
        assert result.status == LabStatus.PENDING
        assert result.analyst == 'lab-1'
        assert result.strength == Decimal('29.4')
        assert bale.lab_status == LabStatus.PENDING
        assert not bale.is_eligible

    def test_rerecording_resets_approval(self, make_bale, analyst):
        bale = make_bale(grade=Grade.OLIY)
        assert bale.lab_status == LabStatus.APPROVED

        warehouse.record_lab_result(bale.pk, Grade.ORTA, analyst)

        bale.refresh_from_db()
        assert bale.lab_status == LabStatus.PENDING
        assert bale.grade == ''
        assert LabResult.objects.filter(bale=bale).count() == 1

    def test_unknown_grade(self, make_bale, analyst):
        bale = make_bale(grade=None)

        with pytest.raises(BaleError) as exc:
            warehouse.record_lab_result(bale.pk, 'SUPER', analyst)

        assert exc.value.code == 'INVALID_GRADE'

    def test_reserved_bale_is_frozen(self, checklist, make_bale, clerk, analyst):
        bale = make_bale()
        warehouse.add_bales(checklist.pk, [bale.pk], clerk)

        with pytest.raises(InvalidState) as exc:
            warehouse.record_lab_result(bale.pk, Grade.IFLOS, analyst)

        assert exc.value.current == 'reserved'

    def test_bulk_is_all_or_nothing(self, make_bale, analyst, producer):
        first = make_bale(grade=None)
        second = make_bale(grade=None)
        warehouse.discard_bale(second.pk, 'Torn', producer)

        with pytest.raises(InvalidState):
            warehouse.bulk_record_lab_results([first.pk, second.pk], Grade.ORTA, analyst)

        assert not LabResult.objects.filter(bale_id=first.pk).exists()

    def test_bulk_records_each_bale(self, make_bale, analyst):
        bales = [make_bale(grade=None) for _ in range(3)]

        results = warehouse.bulk_record_lab_results([b.pk for b in bales], Grade.ODDIY, analyst)

        assert len(results) == 3
        assert set(Bale.objects.values_list('lab_status', flat=True)) == {LabStatus.PENDING}


class TestReviewLabResult:
    """Tests for approve/reject."""

    def test_approve_copies_grade(self, make_bale, analyst):
        bale = make_bale(grade=Grade.YAXSHI, approve=False)

        result = warehouse.approve_lab_result(bale.pk, analyst)

        bale.refresh_from_db()
        assert result.status == LabStatus.APPROVED
        assert result.reviewer == 'lab-1'
        assert result.reviewed_at is not None
        assert bale.lab_status == LabStatus.APPROVED
        assert bale.grade == Grade.YAXSHI
        assert bale.is_eligible

    def test_reject_keeps_bale_out(self, make_bale, analyst):
        bale = make_bale(grade=Grade.ORTA, approve=False)

        result = warehouse.reject_lab_result(bale.pk, analyst, reason='Sample contaminated')

        bale.refresh_from_db()
        assert result.status == LabStatus.REJECTED
        assert 'Sample contaminated' in result.comment
        assert bale.lab_status == LabStatus.REJECTED
        assert not bale.is_eligible

    def test_approve_without_result(self, make_bale, analyst):
        bale = make_bale(grade=None)

        with pytest.raises(NotFound) as exc:
            warehouse.approve_lab_result(bale.pk, analyst)

        assert exc.value.data['entity'] == 'lab_result'
