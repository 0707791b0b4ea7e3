"""
Modification workflow — administrator review of post-lock requests.

Lock order matches ChecklistEngine: checklist row first, then the
request row.
"""

import logging

from django.db import transaction
from django.utils import timezone

from baleman.exceptions import InvalidState, NotFound
from baleman.models.enums import ChecklistStatus, RequestStatus
from baleman.models.modification import ModificationRequest
from baleman.permissions import Capability, require
from baleman.services.checklists import expect_status, lock_checklist, save_with_summary

logger = logging.getLogger('baleman')


def _lock_pending(request_id):
    """Lock the request and its checklist; both must be awaiting review."""
    try:
        checklist_id = ModificationRequest.objects.values_list('checklist_id', flat=True).get(pk=request_id)
    except ModificationRequest.DoesNotExist:
        raise NotFound(entity='modification_request', id=request_id) from None

    checklist = lock_checklist(checklist_id) if checklist_id is not None else None
    request = ModificationRequest.objects.select_for_update().get(pk=request_id)

    if request.status != RequestStatus.PENDING or checklist is None:
        raise InvalidState(
            entity='modification_request',
            id=request.pk,
            current=request.status,
            expected=RequestStatus.PENDING,
        )
    expect_status(checklist, ChecklistStatus.MODIFICATION_REQUESTED)
    return request, checklist


class ModificationWorkflow:
    """Modification request review methods."""

    @classmethod
    def pending_modifications(cls):
        """Requests awaiting review, oldest first."""
        return ModificationRequest.objects.pending().select_related('checklist').order_by('created_at', 'pk')

    @classmethod
    def approve_modification(cls, request_id, actor, note='') -> ModificationRequest:
        """
        Accept the request and re-open the checklist for editing.

        Transition: checklist MODIFICATION_REQUESTED -> DRAFT. Items and
        bale reservations are kept as they are.
        Loading dock scans are cleared; the checklist is scanned again
        after it is re-locked.
        """
        require(actor, Capability.REVIEW_MODIFICATIONS)

        with transaction.atomic():
            request, checklist = _lock_pending(request_id)
            cls._review(request, RequestStatus.APPROVED, actor, note)

            checklist.status = ChecklistStatus.DRAFT
            checklist.confirmed_by = ''
            checklist.confirmed_at = None
            checklist.locked_by = ''
            checklist.locked_at = None
            checklist.items.filter(scanned_at__isnull=False).update(scanned_at=None, scanned_by='')
            save_with_summary(
                checklist, 'status', 'confirmed_by', 'confirmed_at', 'locked_by', 'locked_at',
            )

        logger.info(
            "baleman.modification.approved",
            extra={"request_id": request.pk, "checklist_id": checklist.pk, "by": actor.id},
        )
        return request

    @classmethod
    def reject_modification(cls, request_id, actor, note='') -> ModificationRequest:
        """
        Refuse the request; the checklist goes back to LOCKED unchanged.
        """
        require(actor, Capability.REVIEW_MODIFICATIONS)

        with transaction.atomic():
            request, checklist = _lock_pending(request_id)
            cls._review(request, RequestStatus.REJECTED, actor, note)

            checklist.status = ChecklistStatus.LOCKED
            checklist.save(update_fields=['status', 'updated_at'])

        logger.info(
            "baleman.modification.rejected",
            extra={"request_id": request.pk, "checklist_id": checklist.pk, "by": actor.id},
        )
        return request

    @classmethod
    def _review(cls, request, status, actor, note) -> None:
        request.status = status
        request.reviewed_by = actor.id
        request.reviewed_at = timezone.now()
        request.review_note = note
        request.save(update_fields=['status', 'reviewed_by', 'reviewed_at', 'review_note'])
