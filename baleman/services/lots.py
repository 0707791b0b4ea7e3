"""
Lot registry — production lots and their capacity counters.

All state-changing methods use transaction.atomic() with row locks.
``Lot.used`` itself is only moved by BaleStore.
"""

import logging

from django.db import IntegrityError, transaction

from baleman.conf import baleman_settings
from baleman.exceptions import BaleError, InvalidState, InvalidTransition, NotFound
from baleman.models.enums import LotStatus, ProductType
from baleman.models.lot import Lot
from baleman.permissions import Capability, require

logger = logging.getLogger('baleman')

LOT_TRANSITIONS = {
    LotStatus.DRAFT: {LotStatus.ACTIVE},
    LotStatus.ACTIVE: {LotStatus.PAUSED, LotStatus.CLOSED},
    LotStatus.PAUSED: {LotStatus.ACTIVE, LotStatus.CLOSED},
    LotStatus.CLOSED: set(),
}


def _lock_lot(lot_id) -> Lot:
    try:
        return Lot.objects.select_for_update().get(pk=lot_id)
    except Lot.DoesNotExist:
        raise NotFound(entity='lot', id=lot_id) from None


class LotRegistry:
    """Lot lifecycle methods."""

    @classmethod
    def get_lot(cls, lot_id) -> Lot:
        try:
            return Lot.objects.get(pk=lot_id)
        except Lot.DoesNotExist:
            raise NotFound(entity='lot', id=lot_id) from None

    @classmethod
    def create_lot(cls, product_type, actor, number=None, capacity=None,
                   selection='', ptm='', picking_type='',
                   status=LotStatus.ACTIVE, notes='') -> Lot:
        """
        Open a new production lot.

        When ``number`` is omitted the next number for the product type
        is used.

        Raises:
            BaleError('LOT_NUMBER_TAKEN'): Number already exists
            BaleError('INVALID_QUANTITY'): Capacity below 1
        """
        require(actor, Capability.MANAGE_LOTS)

        if product_type not in ProductType.values:
            raise BaleError('INVALID_PRODUCT_TYPE', product_type=product_type)
        if status not in LotStatus.values:
            raise BaleError('INVALID_STATUS', status=status)

        if capacity is None:
            capacity = baleman_settings.DEFAULT_LOT_CAPACITY
        if capacity < 1:
            raise BaleError('INVALID_QUANTITY', requested=capacity)

        try:
            with transaction.atomic():
                if number is None:
                    last = (
                        Lot.objects.select_for_update()
                        .for_product(product_type)
                        .order_by('-number')
                        .first()
                    )
                    number = last.number + 1 if last else 1
                elif Lot.objects.for_product(product_type).filter(number=number).exists():
                    raise BaleError('LOT_NUMBER_TAKEN', product_type=product_type, number=number)

                lot = Lot.objects.create(
                    number=number,
                    product_type=product_type,
                    capacity=capacity,
                    selection=selection,
                    ptm=ptm,
                    picking_type=picking_type,
                    status=status,
                    notes=notes,
                )
        except IntegrityError:
            raise BaleError('LOT_NUMBER_TAKEN', product_type=product_type, number=number) from None

        logger.info(
            "baleman.lot.created",
            extra={"lot_id": lot.pk, "number": lot.number, "product_type": product_type, "by": actor.id},
        )
        return lot

    @classmethod
    def set_lot_status(cls, lot_id, status, actor) -> Lot:
        """
        Move a lot through draft → active ⇄ paused → closed.

        Raises:
            InvalidTransition: Move not in LOT_TRANSITIONS
        """
        require(actor, Capability.MANAGE_LOTS)

        with transaction.atomic():
            lot = _lock_lot(lot_id)

            if status not in LOT_TRANSITIONS.get(lot.status, set()):
                raise InvalidTransition(
                    entity='lot',
                    id=lot.pk,
                    current=lot.status,
                    requested=status,
                )

            old = lot.status
            lot.status = status
            lot.save(update_fields=['status', 'updated_at'])

        logger.info(
            "baleman.lot.status",
            extra={"lot_id": lot.pk, "from": old, "to": status, "by": actor.id},
        )
        return lot

    @classmethod
    def remove_lot(cls, lot_id, actor) -> None:
        """
        Delete a lot that never received a bale.

        Raises:
            InvalidState: Lot still has bales
        """
        require(actor, Capability.MANAGE_LOTS)

        with transaction.atomic():
            lot = _lock_lot(lot_id)
            bale_count = lot.bales.count()
            if bale_count:
                raise InvalidState(
                    entity='lot',
                    id=lot.pk,
                    current=lot.status,
                    bales=bale_count,
                )
            lot.delete()

        logger.info("baleman.lot.removed", extra={"lot_id": lot_id, "by": actor.id})

    @classmethod
    def audit_lot_counters(cls, fix=False) -> list[tuple[Lot, int, int]]:
        """
        Compare every lot's ``used`` with its live bales.

        Returns:
            List of (lot, recorded, actual) for mismatching lots. With
            ``fix=True`` each mismatch is corrected via Lot.recalculate().
        """
        mismatches = []
        for lot in Lot.objects.order_by('pk'):
            actual = lot.live_bale_count()
            if actual == lot.used:
                continue
            mismatches.append((lot, lot.used, actual))
            if fix:
                with transaction.atomic():
                    _lock_lot(lot.pk).recalculate()

        if mismatches:
            logger.warning(
                "baleman.lots.counter_mismatch",
                extra={"lots": [lot.pk for lot, _, _ in mismatches], "fixed": fix},
            )
        return mismatches
