"""
Lab gate — grading that decides checklist eligibility.

A bale only becomes selectable once its lab result is approved.
LabResult.status and Bale.lab_status are written together, under the
bale's row lock.
"""

import logging

from django.db import transaction
from django.utils import timezone

from baleman.exceptions import BaleError, InvalidState, NotFound
from baleman.models.bale import Bale
from baleman.models.enums import BaleStatus, Grade, LabStatus
from baleman.models.lab import LabResult
from baleman.permissions import Capability, require

logger = logging.getLogger('baleman')

METRIC_FIELDS = ('moisture', 'trash', 'navi', 'strength', 'length_mm')


def _lock_gradable(bale_id) -> Bale:
    """Lock a bale that may still be graded (IN_STOCK only)."""
    try:
        bale = Bale.objects.select_for_update().get(pk=bale_id)
    except Bale.DoesNotExist:
        raise NotFound(entity='bale', id=bale_id) from None

    if bale.status != BaleStatus.IN_STOCK:
        raise InvalidState(
            entity='bale',
            id=bale.pk,
            current=bale.status,
            expected=BaleStatus.IN_STOCK,
        )
    return bale


def _result_for(bale: Bale) -> LabResult:
    try:
        return LabResult.objects.select_for_update().get(bale=bale)
    except LabResult.DoesNotExist:
        raise NotFound(entity='lab_result', bale_id=bale.pk) from None


class LabGate:
    """Lab grading methods."""

    @classmethod
    def record_lab_result(cls, bale_id, grade, actor, comment='', **metrics) -> LabResult:
        """
        Create or overwrite the lab sample for a bale.

        The result (re)starts as PENDING and the bale loses its approved
        grade until a reviewer approves it again.

        Args:
            grade: Grade value
            metrics: moisture, trash, navi, strength, length_mm

        Raises:
            InvalidState: Bale already reserved/shipped
            BaleError('INVALID_GRADE'): Unknown grade
        """
        require(actor, Capability.GRADE_BALES)

        with transaction.atomic():
            result = cls._record(bale_id, grade, actor, comment, metrics)

        logger.info(
            "baleman.lab.recorded",
            extra={"bale_id": bale_id, "grade": grade, "by": actor.id},
        )
        return result

    @classmethod
    def bulk_record_lab_results(cls, bale_ids, grade, actor, comment='', **metrics) -> list[LabResult]:
        """Record the same sample for several bales; all or nothing."""
        require(actor, Capability.GRADE_BALES)

        with transaction.atomic():
            results = [
                cls._record(bale_id, grade, actor, comment, metrics)
                for bale_id in dict.fromkeys(bale_ids)
            ]

        logger.info(
            "baleman.lab.bulk_recorded",
            extra={"bales": len(results), "grade": grade, "by": actor.id},
        )
        return results

    @classmethod
    def _record(cls, bale_id, grade, actor, comment, metrics) -> LabResult:
        if grade not in Grade.values:
            raise BaleError('INVALID_GRADE', grade=grade)
        unknown = set(metrics) - set(METRIC_FIELDS)
        if unknown:
            raise TypeError(f"Unknown lab metrics: {', '.join(sorted(unknown))}")

        bale = _lock_gradable(bale_id)

        defaults = {field: metrics.get(field) for field in METRIC_FIELDS}
        defaults.update(
            grade=grade,
            comment=comment,
            status=LabStatus.PENDING,
            analyst=actor.id,
            reviewer='',
            reviewed_at=None,
        )
        result, _ = LabResult.objects.update_or_create(bale=bale, defaults=defaults)

        bale.lab_status = LabStatus.PENDING
        bale.grade = ''
        bale.save(update_fields=['lab_status', 'grade', 'updated_at'])
        return result

    @classmethod
    def approve_lab_result(cls, bale_id, actor) -> LabResult:
        """
        Approve the bale's lab result; the bale takes its grade.

        Transition: lab PENDING|REJECTED -> APPROVED
        """
        require(actor, Capability.GRADE_BALES)

        with transaction.atomic():
            bale = _lock_gradable(bale_id)
            result = _result_for(bale)

            result.status = LabStatus.APPROVED
            result.reviewer = actor.id
            result.reviewed_at = timezone.now()
            result.save(update_fields=['status', 'reviewer', 'reviewed_at', 'updated_at'])

            bale.lab_status = LabStatus.APPROVED
            bale.grade = result.grade
            bale.save(update_fields=['lab_status', 'grade', 'updated_at'])

        logger.info(
            "baleman.lab.approved",
            extra={"bale_id": bale.pk, "grade": result.grade, "by": actor.id},
        )
        return result

    @classmethod
    def reject_lab_result(cls, bale_id, actor, reason='') -> LabResult:
        """
        Reject the bale's lab result; the bale stays out of checklists.

        Transition: lab PENDING|APPROVED -> REJECTED
        """
        require(actor, Capability.GRADE_BALES)

        with transaction.atomic():
            bale = _lock_gradable(bale_id)
            result = _result_for(bale)

            result.status = LabStatus.REJECTED
            result.reviewer = actor.id
            result.reviewed_at = timezone.now()
            if reason:
                result.comment = f"{result.comment}\n{reason}".strip()
            result.save(update_fields=['status', 'reviewer', 'reviewed_at', 'comment', 'updated_at'])

            bale.lab_status = LabStatus.REJECTED
            bale.grade = ''
            bale.save(update_fields=['lab_status', 'grade', 'updated_at'])

        logger.info(
            "baleman.lab.rejected",
            extra={"bale_id": bale.pk, "reason": reason, "by": actor.id},
        )
        return result
