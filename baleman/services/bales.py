"""
Bale store — bale registration and lifecycle outside checklists.

Every change that adds or removes a bale from its lot moves
``Lot.used`` in the same transaction, through a conditional update
(check-and-set), so the counter can't drift past capacity.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from baleman.exceptions import BaleError, CapacityExceeded, InvalidState, NotFound
from baleman.models.bale import Bale
from baleman.models.enums import BaleStatus, LotStatus
from baleman.models.lot import Lot
from baleman.permissions import Capability, require
from baleman.services.lots import _lock_lot

logger = logging.getLogger('baleman')

TWO_PLACES = Decimal('0.01')


def _weight(value, field) -> Decimal:
    try:
        weight = Decimal(str(value)).quantize(TWO_PLACES)
    except (InvalidOperation, TypeError, ValueError):
        raise BaleError('INVALID_WEIGHT', field=field, value=value) from None
    if not weight.is_finite() or weight < 0:
        raise BaleError('INVALID_WEIGHT', field=field, value=value)
    return weight


def _lock_bale(bale_id) -> Bale:
    try:
        return Bale.objects.select_for_update().get(pk=bale_id)
    except Bale.DoesNotExist:
        raise NotFound(entity='bale', id=bale_id) from None


def _claim_slot(lot: Lot) -> None:
    """Increment ``used`` unless the lot is full."""
    claimed = Lot.objects.filter(pk=lot.pk, used__lt=F('capacity')).update(
        used=F('used') + 1,
        updated_at=timezone.now(),
    )
    if not claimed:
        lot.refresh_from_db(fields=['used', 'capacity'])
        raise CapacityExceeded(lot_id=lot.pk, capacity=lot.capacity, used=lot.used)


def _release_slot(lot_id) -> None:
    released = Lot.objects.filter(pk=lot_id, used__gt=0).update(
        used=F('used') - 1,
        updated_at=timezone.now(),
    )
    if not released:
        logger.warning("baleman.lot.counter_underflow", extra={"lot_id": lot_id})


def _flip(bale: Bale, expected, new) -> Bale:
    """Conditional lifecycle update keyed on the current status."""
    flipped = Bale.objects.filter(pk=bale.pk, status=expected).update(
        status=new,
        updated_at=timezone.now(),
    )
    if not flipped:
        raise InvalidState(entity='bale', id=bale.pk, current=bale.status, expected=expected)
    bale.refresh_from_db(fields=['status', 'updated_at'])
    return bale


class BaleStore:
    """Bale lifecycle methods."""

    @classmethod
    def get_bale(cls, bale_id) -> Bale:
        try:
            return Bale.objects.select_related('lot').get(pk=bale_id)
        except Bale.DoesNotExist:
            raise NotFound(entity='bale', id=bale_id) from None

    @classmethod
    def register_bale(cls, lot_id, gross, tare, actor, order_no=None) -> Bale:
        """
        Record a weighed bale into an active lot.

        Weights come from the scale feed; net = gross - tare.

        Raises:
            InvalidState: Lot not active
            CapacityExceeded: Lot already holds ``capacity`` bales
            BaleError('INVALID_WEIGHT'): Negative weight or tare > gross
            BaleError('ORDER_NO_TAKEN'): Explicit order_no already used

        Concurrency:
            - Lot row locked for order number generation
            - ``used`` incremented with UPDATE ... WHERE used < capacity
        """
        require(actor, Capability.REGISTER_BALES)

        gross = _weight(gross, 'gross')
        tare = _weight(tare, 'tare')
        net = gross - tare
        if gross == 0 or net < 0:
            raise BaleError('INVALID_WEIGHT', gross=gross, tare=tare)

        with transaction.atomic():
            lot = _lock_lot(lot_id)

            if lot.status != LotStatus.ACTIVE:
                raise InvalidState(
                    entity='lot',
                    id=lot.pk,
                    current=lot.status,
                    expected=LotStatus.ACTIVE,
                )

            _claim_slot(lot)

            if order_no is None:
                last = lot.bales.order_by('-order_no').values_list('order_no', flat=True).first()
                order_no = (last or 0) + 1
            elif order_no < 1 or lot.bales.filter(order_no=order_no).exists():
                raise BaleError('ORDER_NO_TAKEN', lot_id=lot.pk, order_no=order_no)

            bale = Bale.objects.create(
                qr_code=f"MRK-{lot.product_type}{lot.number}-{order_no:03d}",
                lot=lot,
                order_no=order_no,
                product_type=lot.product_type,
                gross_weight=gross,
                tare_weight=tare,
                net_weight=net,
            )

        logger.info(
            "baleman.bale.registered",
            extra={
                "bale_id": bale.pk,
                "lot_id": lot.pk,
                "order_no": order_no,
                "net": str(net),
                "by": actor.id,
            },
        )
        return bale

    @classmethod
    def discard_bale(cls, bale_id, reason, actor) -> Bale:
        """
        Write a bale off as waste.

        Transition: IN_STOCK -> WASTE (frees a lot slot)
        """
        require(actor, Capability.REGISTER_BALES)
        if not reason:
            raise BaleError('REASON_REQUIRED')

        with transaction.atomic():
            bale = _flip(_lock_bale(bale_id), BaleStatus.IN_STOCK, BaleStatus.WASTE)
            _release_slot(bale.lot_id)

        logger.info(
            "baleman.bale.discarded",
            extra={"bale_id": bale.pk, "reason": reason, "by": actor.id},
        )
        return bale

    @classmethod
    def return_bale(cls, bale_id, reason, actor) -> Bale:
        """
        Take back a shipped bale.

        Transition: SHIPPED -> RETURNED (frees a lot slot)
        """
        require(actor, Capability.DISPATCH_SHIPMENTS)
        if not reason:
            raise BaleError('REASON_REQUIRED')

        with transaction.atomic():
            bale = _flip(_lock_bale(bale_id), BaleStatus.SHIPPED, BaleStatus.RETURNED)
            _release_slot(bale.lot_id)

        logger.info(
            "baleman.bale.returned",
            extra={"bale_id": bale.pk, "reason": reason, "by": actor.id},
        )
        return bale

    @classmethod
    def remove_bale(cls, bale_id, actor) -> None:
        """
        Delete a mis-registered bale (and its lab result).

        Only IN_STOCK bales can be removed; reserved bales must first
        leave their checklist.
        """
        require(actor, Capability.REGISTER_BALES)

        with transaction.atomic():
            bale = _lock_bale(bale_id)
            if bale.status != BaleStatus.IN_STOCK:
                raise InvalidState(
                    entity='bale',
                    id=bale.pk,
                    current=bale.status,
                    expected=BaleStatus.IN_STOCK,
                )
            lot_id = bale.lot_id
            bale.delete()
            _release_slot(lot_id)

        logger.info("baleman.bale.removed", extra={"bale_id": bale_id, "by": actor.id})

    @classmethod
    def ready_bales(cls, lot_id=None, grade=None):
        """
        Bales eligible for a checklist, oldest lot and order number first.
        """
        qs = Bale.objects.eligible().select_related('lot')
        if lot_id is not None:
            qs = qs.filter(lot_id=lot_id)
        if grade:
            qs = qs.filter(grade=grade)
        return qs.order_by('lot__number', 'lot_id', 'order_no')

    @classmethod
    def ready_bales_by_lot(cls, grade=None) -> list[dict]:
        """
        Eligible bales grouped by lot.

        Returns:
            [{'lot': Lot, 'bales': [Bale, ...]}, ...] in lot order
        """
        groups: dict[int, dict] = {}
        for bale in cls.ready_bales(grade=grade):
            group = groups.setdefault(bale.lot_id, {'lot': bale.lot, 'bales': []})
            group['bales'].append(bale)
        return list(groups.values())
