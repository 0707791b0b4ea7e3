"""
Lot model — production batch ("marka") with bounded capacity.
"""

import logging

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import LotStatus, ProductType

logger = logging.getLogger('baleman')


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def for_product(self, product_type):
        return self.filter(product_type=product_type)


class Lot(models.Model):
    """
    Production lot grouping bales of one product type.

    Capacity:
    - ``used`` is a counter of bales currently owned by the lot
      (anything not returned or wasted)
    - It moves only together with bale registration/removal, through
      conditional updates in BaleStore
    - Use recalculate() for audit/correction
    """

    number = models.PositiveIntegerField(
        verbose_name=_('Number'),
        help_text=_('Sequential per product type'),
    )
    product_type = models.CharField(
        max_length=20,
        choices=ProductType.choices,
        verbose_name=_('Product type'),
    )
    selection = models.CharField(
        max_length=100,
        blank=True,
        default='',
        verbose_name=_('Selection variety'),
    )
    ptm = models.CharField(max_length=50, blank=True, default='', verbose_name=_('PTM'))
    picking_type = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Picking type'),
    )

    capacity = models.PositiveIntegerField(
        default=220,
        verbose_name=_('Capacity'),
    )
    used = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Used'),
        help_text=_('Bales currently owned by the lot'),
    )

    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lot')
        verbose_name_plural = _('Lots')
        ordering = ['product_type', 'number']
        constraints = [
            models.UniqueConstraint(
                fields=['product_type', 'number'],
                name='unique_lot_number_per_product',
            ),
            models.CheckConstraint(
                condition=Q(capacity__gte=1),
                name='lot_capacity_positive',
            ),
            models.CheckConstraint(
                condition=Q(used__lte=models.F('capacity')),
                name='lot_used_within_capacity',
            ),
        ]

    @property
    def free_slots(self) -> int:
        return self.capacity - self.used

    def live_bale_count(self) -> int:
        """Bales that count towards ``used``."""
        return self.bales.live().count()

    def recalculate(self) -> int:
        """
        Recalculate ``used`` from the bales table.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            New calculated count
        """
        total = self.live_bale_count()

        if total != self.used:
            old = self.used
            self.used = total
            self.save(update_fields=['used', 'updated_at'])
            logger.warning(
                f"Lot {self.pk} recalculated: {old} → {total} "
                f"(diff: {total - old})"
            )

        return total

    def __str__(self) -> str:
        return f"{self.product_type} #{self.number} ({self.used}/{self.capacity})"
