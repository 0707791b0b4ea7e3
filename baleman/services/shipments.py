"""
Shipment dispatcher — dispatch of locked checklists.

Dispatch flips the checklist's reserved bales to shipped in the same
transaction that records the shipment; cancellation flips them back so
the still-locked checklist can be dispatched again.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from baleman.conf import baleman_settings
from baleman.exceptions import BaleError, InvalidState, InvalidTransition, NotFound
from baleman.models.bale import Bale
from baleman.models.enums import BaleStatus, ChecklistStatus, ShipmentStatus
from baleman.models.shipment import DOCUMENT_KINDS, Shipment
from baleman.permissions import Capability, require
from baleman.services.checklists import SUMMARY_FIELDS, expect_status, lock_checklist

logger = logging.getLogger('baleman')


@dataclass(frozen=True)
class Driver:
    """Driver and vehicle taking the load."""

    first_name: str
    last_name: str
    license_number: str
    vehicle_number: str
    phone: str = ''
    vehicle_type: str = ''


def _documents(flags) -> dict[str, bool]:
    flags = flags or {}
    unknown = set(flags) - set(DOCUMENT_KINDS)
    if unknown:
        raise BaleError('INVALID_DOCUMENT', documents=sorted(unknown))
    return {kind: bool(flags.get(kind, False)) for kind in DOCUMENT_KINDS}


def _tracking_number(now) -> str:
    prefix = baleman_settings.TRACKING_PREFIX
    return f"{prefix}-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def _history_entry(status, actor, at, notes='') -> dict:
    return {'status': str(status), 'at': at.isoformat(), 'by': actor.id, 'notes': notes}


def _lock_shipment(shipment_id):
    """Lock a shipment and its checklist (checklist first)."""
    try:
        checklist_id = Shipment.objects.values_list('checklist_id', flat=True).get(pk=shipment_id)
    except Shipment.DoesNotExist:
        raise NotFound(entity='shipment', id=shipment_id) from None
    checklist = lock_checklist(checklist_id)
    return Shipment.objects.select_for_update().get(pk=shipment_id), checklist


class ShipmentDispatcher:
    """Shipment methods."""

    @classmethod
    def get_shipment(cls, shipment_id) -> Shipment:
        try:
            return Shipment.objects.get(pk=shipment_id)
        except Shipment.DoesNotExist:
            raise NotFound(entity='shipment', id=shipment_id) from None

    @classmethod
    def track_shipment(cls, number) -> Shipment:
        """Find a shipment by tracking or waybill number (latest first)."""
        shipment = (
            Shipment.objects
            .filter(Q(tracking_number=number) | Q(waybill_number=number))
            .order_by('-created_at', '-pk')
            .first()
        )
        if shipment is None:
            raise NotFound(entity='shipment', number=number)
        return shipment

    @classmethod
    def create_shipment(cls, checklist_id, driver: Driver, waybill_number, actor,
                        documents=None, notes='', planned_delivery_date=None) -> Shipment:
        """
        Dispatch a LOCKED checklist.

        Totals are copied from a freshly recomputed summary and never
        change afterwards. Every reserved bale becomes SHIPPED.
        Every item must have been scanned (scan_bale) first.

        Raises:
            InvalidState: Checklist not LOCKED, not fully scanned or
                already has an active shipment
        """
        require(actor, Capability.DISPATCH_SHIPMENTS)
        if not waybill_number:
            raise BaleError('WAYBILL_REQUIRED')
        documents = _documents(documents)

        with transaction.atomic():
            checklist = lock_checklist(checklist_id)
            expect_status(checklist, ChecklistStatus.LOCKED)

            active = checklist.shipments.active().first()
            if active is not None:
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='DISPATCHED',
                    shipment_id=active.pk,
                )
            if not checklist.fully_scanned:
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='NOT_SCANNED',
                    scanned=checklist.scanned_items,
                    items=checklist.items.count(),
                )

            summary = checklist.refresh_summary()
            checklist.save(update_fields=SUMMARY_FIELDS)

            now = timezone.now()
            bale_ids = list(checklist.items.values_list('bale_id', flat=True))
            shipped = Bale.objects.reserved().filter(pk__in=bale_ids).update(
                status=BaleStatus.SHIPPED,
                updated_at=now,
            )
            if shipped != len(bale_ids):
                raise InvalidState(
                    entity='checklist',
                    id=checklist.pk,
                    current=checklist.status,
                    reason='RESERVATION_MISMATCH',
                    items=len(bale_ids),
                    reserved=shipped,
                )

            shipment = Shipment.objects.create(
                checklist=checklist,
                order_id=checklist.order_id,
                customer_id=checklist.customer_id,
                driver_first_name=driver.first_name,
                driver_last_name=driver.last_name,
                driver_license=driver.license_number,
                driver_phone=driver.phone,
                vehicle_number=driver.vehicle_number,
                vehicle_type=driver.vehicle_type,
                waybill_number=waybill_number,
                tracking_number=_tracking_number(now),
                documents=documents,
                status=ShipmentStatus.PENDING,
                status_history=[_history_entry(ShipmentStatus.PENDING, actor, now, notes)],
                total_items=summary.total_items,
                total_weight=summary.total_weight,
                notes=notes,
                shipped_by=actor.id,
                planned_delivery_date=planned_delivery_date,
                created_at=now,
            )

        logger.info(
            "baleman.shipment.created",
            extra={
                "shipment_id": shipment.pk,
                "checklist_id": checklist.pk,
                "tracking": shipment.tracking_number,
                "bales": shipment.total_items,
                "by": actor.id,
            },
        )
        return shipment

    @classmethod
    def update_shipment_status(cls, shipment_id, new_status, actor, notes='') -> Shipment:
        """
        Advance a shipment one step or cancel it.

        Forward: PENDING -> PREPARING -> READY -> SHIPPED -> DELIVERED
        Cancel:  any state before SHIPPED -> CANCELLED (bales back to
                 RESERVED)

        Raises:
            InvalidTransition: Anything else
        """
        require(actor, Capability.DISPATCH_SHIPMENTS)

        with transaction.atomic():
            shipment, checklist = _lock_shipment(shipment_id)

            if not shipment.can_transition_to(new_status):
                raise InvalidTransition(
                    entity='shipment',
                    id=shipment.pk,
                    current=shipment.status,
                    requested=new_status,
                )

            now = timezone.now()
            old = shipment.status
            fields = ['status', 'status_history', 'updated_at']

            if new_status == ShipmentStatus.CANCELLED:
                bale_ids = checklist.items.values_list('bale_id', flat=True)
                Bale.objects.filter(pk__in=bale_ids, status=BaleStatus.SHIPPED).update(
                    status=BaleStatus.RESERVED,
                    updated_at=now,
                )
                shipment.cancelled_at = now
                fields.append('cancelled_at')
            elif new_status == ShipmentStatus.SHIPPED:
                shipment.shipped_at = now
                fields.append('shipped_at')
            elif new_status == ShipmentStatus.DELIVERED:
                shipment.delivered_at = now
                fields.append('delivered_at')

            shipment.status = new_status
            shipment.status_history = [
                *shipment.status_history,
                _history_entry(new_status, actor, now, notes),
            ]
            shipment.save(update_fields=fields)

        logger.info(
            "baleman.shipment.status",
            extra={"shipment_id": shipment.pk, "from": old, "to": new_status, "by": actor.id},
        )
        return shipment

    @classmethod
    def complete_shipment(cls, shipment_id, actor, delivered_at=None,
                          recipient_name='', signature='', delivery_notes='') -> Shipment:
        """
        Record delivery with the recipient's details.

        Transition: SHIPPED -> DELIVERED

        Raises:
            InvalidState: Shipment not SHIPPED
        """
        require(actor, Capability.DISPATCH_SHIPMENTS)

        with transaction.atomic():
            shipment, _ = _lock_shipment(shipment_id)

            if shipment.status != ShipmentStatus.SHIPPED:
                raise InvalidState(
                    entity='shipment',
                    id=shipment.pk,
                    current=shipment.status,
                    expected=ShipmentStatus.SHIPPED,
                )

            now = timezone.now()
            shipment.status = ShipmentStatus.DELIVERED
            shipment.delivered_at = delivered_at or now
            shipment.recipient_name = recipient_name
            shipment.recipient_signature = signature
            shipment.delivery_notes = delivery_notes
            shipment.status_history = [
                *shipment.status_history,
                _history_entry(ShipmentStatus.DELIVERED, actor, now, delivery_notes),
            ]
            shipment.save(update_fields=[
                'status', 'delivered_at', 'recipient_name', 'recipient_signature',
                'delivery_notes', 'status_history', 'updated_at',
            ])

        logger.info(
            "baleman.shipment.delivered",
            extra={"shipment_id": shipment.pk, "recipient": recipient_name, "by": actor.id},
        )
        return shipment
