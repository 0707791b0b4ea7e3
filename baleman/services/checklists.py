"""
Checklist engine — reserved bale selections and their lifecycle.

Every method that changes a checklist runs in transaction.atomic() and
locks the checklist row first, so calls against the same checklist are
serialized while different checklists proceed in parallel.

Bale reservation is a conditional UPDATE (status=in_stock AND
lab_status=approved -> reserved) whose row count must equal the batch
size; a concurrent reservation of the same bale makes the count fall
short and the whole batch rolls back.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from baleman.conf import baleman_settings
from baleman.exceptions import (
    BaleError,
    DuplicateRequest,
    IneligibleBale,
    InvalidState,
    NotFound,
)
from baleman.models.bale import Bale
from baleman.models.checklist import Checklist, ChecklistItem
from baleman.models.enums import BaleStatus, ChecklistStatus, LabStatus
from baleman.models.lab import LabResult
from baleman.models.lot import Lot
from baleman.models.modification import ModificationRequest
from baleman.permissions import Capability, require
from baleman.summary import ChecklistSnapshot, ChecklistSummary

logger = logging.getLogger('baleman')

SUMMARY_FIELDS = ['summary', 'total_items', 'total_weight', 'updated_at']


class SelectionCriterion(NamedTuple):
    """How many eligible bales of a lot (and grade) to pick."""

    lot_id: int
    grade: str | None
    quantity: int


def lock_checklist(checklist_id) -> Checklist:
    try:
        return Checklist.objects.select_for_update().get(pk=checklist_id)
    except Checklist.DoesNotExist:
        raise NotFound(entity='checklist', id=checklist_id) from None


def expect_status(checklist: Checklist, *expected) -> None:
    if checklist.status not in expected:
        raise InvalidState(
            entity='checklist',
            id=checklist.pk,
            current=checklist.status,
            expected=expected[0] if len(expected) == 1 else list(expected),
        )


def save_with_summary(checklist: Checklist, *fields):
    """Recompute the derived summary and save it with ``fields``."""
    summary = checklist.refresh_summary()
    checklist.save(update_fields=[*fields, *SUMMARY_FIELDS])
    return summary


def _ineligibility(bale: Bale | None) -> str | None:
    """Reason code a bale can't be reserved, or None."""
    if bale is None:
        return 'NOT_FOUND'
    if bale.status == BaleStatus.RESERVED:
        return 'ALREADY_RESERVED'
    if bale.status != BaleStatus.IN_STOCK:
        return 'NOT_IN_STOCK'
    if bale.lab_status != LabStatus.APPROVED:
        return f'LAB_{bale.lab_status.upper()}'
    return None


def _normalize_ids(bale_ids) -> tuple[list, dict]:
    """Deduplicate ids in request order; unparseable ids become failures."""
    to_python = Bale._meta.pk.to_python
    ids, failures = [], {}
    for raw in bale_ids:
        try:
            bale_id = to_python(raw)
        except ValidationError:
            failures[raw] = 'NOT_FOUND'
            continue
        if bale_id not in ids:
            ids.append(bale_id)
    return ids, failures


def _renumber(checklist: Checklist) -> None:
    """Close gaps so positions run 0..n-1 in their current order."""
    changed = []
    for index, item in enumerate(checklist.items.order_by('position', 'pk')):
        if item.position != index:
            item.position = index
            changed.append(item)
    if changed:
        ChecklistItem.objects.bulk_update(changed, ['position'])


class ChecklistEngine:
    """Checklist lifecycle methods."""

    @classmethod
    def get_checklist(cls, checklist_id) -> Checklist:
        try:
            return Checklist.objects.get(pk=checklist_id)
        except Checklist.DoesNotExist:
            raise NotFound(entity='checklist', id=checklist_id) from None

    @classmethod
    def create_checklist(cls, customer_id, workspace_id, actor,
                         customer_name='', order_id='', notes='') -> Checklist:
        require(actor, Capability.EDIT_CHECKLISTS)

        checklist = Checklist(
            customer_id=customer_id,
            workspace_id=workspace_id,
            customer_name=customer_name,
            order_id=order_id,
            notes=notes,
            created_by=actor.id,
        )
        checklist.summary = ChecklistSummary.from_items(()).as_dict()
        checklist.save()

        logger.info(
            "baleman.checklist.created",
            extra={"checklist_id": checklist.pk, "customer_id": customer_id, "by": actor.id},
        )
        return checklist

    @classmethod
    def add_bales(cls, checklist_id, bale_ids, actor) -> Checklist:
        """
        Reserve bales into a DRAFT checklist, all or nothing.

        Items are appended at the next positions in request order with
        snapshots of the bale (qr code, net weight, grade, quality score).

        Raises:
            InvalidState: Checklist not DRAFT
            IneligibleBale: Any bale missing, not approved, not in stock or
                reserved elsewhere. ``failures`` maps every failing id to a
                reason; nothing is reserved.
            BaleError('BATCH_TOO_LARGE'): More than MAX_BATCH_SIZE ids
        """
        require(actor, Capability.EDIT_CHECKLISTS)

        ids, failures = _normalize_ids(bale_ids)
        if not ids and not failures:
            raise BaleError('INVALID_QUANTITY', requested=0)
        limit = baleman_settings.MAX_BATCH_SIZE
        if len(ids) > limit:
            raise BaleError('BATCH_TOO_LARGE', requested=len(ids), limit=limit)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.DRAFT)

            bales = {
                bale.pk: bale
                for bale in Bale.objects.select_for_update().filter(pk__in=ids).order_by('pk')
            }
            for bale_id in ids:
                reason = _ineligibility(bales.get(bale_id))
                if reason:
                    failures[bale_id] = reason
            if failures:
                first = next(iter(failures))
                raise IneligibleBale(
                    checklist_id=checklist.pk,
                    bale_id=first,
                    reason=failures[first],
                    failures=failures,
                )

            now = timezone.now()
            reserved = Bale.objects.eligible().filter(pk__in=ids).update(
                status=BaleStatus.RESERVED,
                updated_at=now,
            )
            if reserved != len(ids):
                # Rows this call flipped carry ``now``; the rest were taken
                lost = Bale.objects.filter(pk__in=ids).exclude(updated_at=now)
                failures = {pk: 'CONCURRENT_RESERVATION' for pk in lost.values_list('pk', flat=True)}
                first = next(iter(failures), ids[0])
                raise IneligibleBale(
                    checklist_id=checklist.pk,
                    bale_id=first,
                    reason='CONCURRENT_RESERVATION',
                    failures=failures or {first: 'CONCURRENT_RESERVATION'},
                )

            lots = Lot.objects.in_bulk({bale.lot_id for bale in bales.values()})
            scores = dict(
                LabResult.objects.filter(bale_id__in=ids).values_list('bale_id', 'strength')
            )
            start = checklist.items.count()
            ChecklistItem.objects.bulk_create([
                ChecklistItem(
                    checklist=checklist,
                    bale=bales[bale_id],
                    lot_id=bales[bale_id].lot_id,
                    position=start + offset,
                    qr_code=bales[bale_id].qr_code,
                    lot_number=lots[bales[bale_id].lot_id].number,
                    net_weight=bales[bale_id].net_weight,
                    grade=bales[bale_id].grade,
                    quality_score=scores.get(bale_id),
                    added_at=now,
                )
                for offset, bale_id in enumerate(ids)
            ])

            save_with_summary(checklist)

        logger.info(
            "baleman.checklist.bales_added",
            extra={"checklist_id": checklist.pk, "bales": len(ids), "by": actor.id},
        )
        return checklist

    @classmethod
    def add_bales_by_criteria(cls, checklist_id, criteria, actor) -> Checklist:
        """
        Pick the oldest eligible bales per (lot_id, grade, quantity) and
        reserve them through add_bales().

        Raises:
            BaleError('INSUFFICIENT_AVAILABLE'): A lot has fewer eligible
                bales of the grade than requested
        """
        require(actor, Capability.EDIT_CHECKLISTS)

        picked: list[int] = []
        for criterion in criteria:
            lot_id, grade, quantity = SelectionCriterion(*criterion)
            if quantity < 1:
                raise BaleError('INVALID_QUANTITY', lot_id=lot_id, requested=quantity)

            qs = Bale.objects.eligible().filter(lot_id=lot_id).exclude(pk__in=picked)
            if grade:
                qs = qs.filter(grade=grade)
            ids = list(qs.order_by('order_no').values_list('pk', flat=True)[:quantity])
            if len(ids) < quantity:
                raise BaleError(
                    'INSUFFICIENT_AVAILABLE',
                    lot_id=lot_id,
                    grade=grade,
                    available=len(ids),
                    requested=quantity,
                )
            picked.extend(ids)

        return cls.add_bales(checklist_id, picked, actor)

    @classmethod
    def remove_item(cls, checklist_id, item_id, actor) -> Checklist:
        """
        Drop an item from a DRAFT checklist and release its bale.

        Positions after the removed item shift down by one.
        """
        require(actor, Capability.EDIT_CHECKLISTS)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.DRAFT)

            try:
                item = checklist.items.get(pk=item_id)
            except ChecklistItem.DoesNotExist:
                raise NotFound(entity='checklist_item', id=item_id, checklist_id=checklist.pk) from None

            released = Bale.objects.reserved().filter(pk=item.bale_id).update(
                status=BaleStatus.IN_STOCK,
                updated_at=timezone.now(),
            )
            if not released:
                raise InvalidState(
                    entity='bale',
                    id=item.bale_id,
                    current=Bale.objects.values_list('status', flat=True).get(pk=item.bale_id),
                    expected=BaleStatus.RESERVED,
                )

            item.delete()
            _renumber(checklist)
            save_with_summary(checklist)

        logger.info(
            "baleman.checklist.item_removed",
            extra={"checklist_id": checklist.pk, "bale_id": item.bale_id, "by": actor.id},
        )
        return checklist

    @classmethod
    def confirm(cls, checklist_id, actor) -> Checklist:
        """
        Freeze the selection.

        Transition: DRAFT -> CONFIRMED (needs at least one item)
        """
        require(actor, Capability.EDIT_CHECKLISTS)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.DRAFT)
            if not checklist.items.exists():
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='EMPTY',
                )

            checklist.status = ChecklistStatus.CONFIRMED
            checklist.confirmed_by = actor.id
            checklist.confirmed_at = timezone.now()
            save_with_summary(checklist, 'status', 'confirmed_by', 'confirmed_at')

        logger.info(
            "baleman.checklist.confirmed",
            extra={"checklist_id": checklist.pk, "items": checklist.total_items, "by": actor.id},
        )
        return checklist

    @classmethod
    def lock(cls, checklist_id, actor) -> Checklist:
        """
        Mark the checklist ready for dispatch.

        Transition: CONFIRMED -> LOCKED. A second call fails with
        InvalidState.
        """
        require(actor, Capability.LOCK_CHECKLISTS)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.CONFIRMED)
            if not checklist.items.exists():
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='EMPTY',
                )

            checklist.status = ChecklistStatus.LOCKED
            checklist.locked_by = actor.id
            checklist.locked_at = timezone.now()
            save_with_summary(checklist, 'status', 'locked_by', 'locked_at')

        logger.info(
            "baleman.checklist.locked",
            extra={"checklist_id": checklist.pk, "items": checklist.total_items, "by": actor.id},
        )
        return checklist

    @classmethod
    def scan_bale(cls, checklist_id, qr_code, actor) -> Checklist:
        """
        Tick off a bale of a LOCKED checklist at the loading dock.

        The checklist can be dispatched once every item is scanned.

        Raises:
            InvalidState: Checklist not LOCKED
            NotFound: No item of the checklist carries ``qr_code``
            BaleError('ALREADY_SCANNED'): Item scanned before
        """
        require(actor, Capability.SCAN_BALES)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.LOCKED)

            item = checklist.items.filter(qr_code=qr_code).first()
            if item is None:
                raise NotFound(entity='checklist_item', qr_code=qr_code, checklist_id=checklist.pk)
            if item.scanned_at is not None:
                raise BaleError(
                    'ALREADY_SCANNED',
                    checklist_id=checklist.pk,
                    bale_id=item.bale_id,
                    scanned_at=item.scanned_at.isoformat(),
                )

            item.scanned_at = timezone.now()
            item.scanned_by = actor.id
            item.save(update_fields=['scanned_at', 'scanned_by'])

        logger.info(
            "baleman.checklist.bale_scanned",
            extra={
                "checklist_id": checklist.pk,
                "bale_id": item.bale_id,
                "scanned": checklist.scanned_items,
                "items": checklist.total_items,
                "by": actor.id,
            },
        )
        return checklist

    @classmethod
    def request_modification(cls, checklist_id, reason, actor) -> ModificationRequest:
        """
        Ask an administrator to re-open a LOCKED checklist.

        Transition: LOCKED -> MODIFICATION_REQUESTED. The request stores
        a frozen snapshot of the checklist totals. Bales stay reserved.

        Raises:
            DuplicateRequest: A pending request already exists
            InvalidState: Not LOCKED, or already dispatched
        """
        require(actor, Capability.REQUEST_MODIFICATIONS)
        if not reason or not reason.strip():
            raise BaleError('REASON_REQUIRED')

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)

            pending = checklist.modification_requests.pending().first()
            if pending is not None:
                raise DuplicateRequest(checklist_id=checklist.pk, request_id=pending.pk)

            expect_status(checklist, ChecklistStatus.LOCKED)
            shipment = checklist.shipments.active().first()
            if shipment is not None:
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='DISPATCHED',
                    shipment_id=shipment.pk,
                )

            summary = checklist.refresh_summary()
            request = ModificationRequest.objects.create(
                checklist=checklist,
                requested_by=actor.id,
                requested_by_role=actor.role,
                reason=reason,
                checklist_summary=ChecklistSnapshot.from_summary(summary).as_dict(),
            )

            checklist.status = ChecklistStatus.MODIFICATION_REQUESTED
            checklist.modification_requested_at = request.created_at
            checklist.modification_reason = reason
            checklist.save(update_fields=[
                'status', 'modification_requested_at', 'modification_reason', *SUMMARY_FIELDS,
            ])

        logger.info(
            "baleman.checklist.modification_requested",
            extra={"checklist_id": checklist.pk, "request_id": request.pk, "by": actor.id},
        )
        return request

    @classmethod
    def delete_checklist(cls, checklist_id, actor) -> int:
        """
        Cancel a DRAFT checklist, releasing every reserved bale.

        Returns:
            Number of bales released
        """
        require(actor, Capability.DELETE_CHECKLISTS)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.DRAFT)
            # Cancelled shipments keep referencing the checklist
            if checklist.shipments.exists():
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='HAS_SHIPMENTS',
                )

            bale_ids = list(checklist.items.values_list('bale_id', flat=True))
            released = Bale.objects.reserved().filter(pk__in=bale_ids).update(
                status=BaleStatus.IN_STOCK,
                updated_at=timezone.now(),
            )
            checklist.delete()

        logger.info(
            "baleman.checklist.deleted",
            extra={"checklist_id": checklist_id, "released": released, "by": actor.id},
        )
        return released
