"""
Bale model — a single weighed unit of fiber ("toy").
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import REMOVED_BALE_STATUSES, BaleStatus, Grade, LabStatus, ProductType


class BaleQuerySet(models.QuerySet):

    def eligible(self):
        """Bales that may be added to a checklist."""
        return self.filter(lab_status=LabStatus.APPROVED, status=BaleStatus.IN_STOCK)

    def live(self):
        """Bales that count towards their lot's ``used``."""
        return self.exclude(status__in=REMOVED_BALE_STATUSES)

    def reserved(self):
        return self.filter(status=BaleStatus.RESERVED)


class Bale(models.Model):
    """
    Weighed bale belonging to exactly one lot.

    LIFECYCLE:

        in_stock ──add_bales()──► reserved ──create_shipment()──► shipped
           │   ▲                     │                               │
           │   └────remove_item()────┘                        return_bale()
           │                                                         ▼
           └──discard_bale()──► waste                             returned

    Only BaleStore and ChecklistEngine services write ``status``;
    ``lab_status`` is written by LabGate.
    """

    qr_code = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_('QR code'),
    )
    lot = models.ForeignKey(
        'baleman.Lot',
        on_delete=models.PROTECT,
        related_name='bales',
        verbose_name=_('Lot'),
    )
    order_no = models.PositiveIntegerField(verbose_name=_('Order number'))
    product_type = models.CharField(
        max_length=20,
        choices=ProductType.choices,
        verbose_name=_('Product type'),
    )

    gross_weight = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name=_('Gross'),
    )
    tare_weight = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Tare'),
    )
    net_weight = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        verbose_name=_('Net'),
        help_text=_('Gross minus tare'),
    )

    grade = models.CharField(
        max_length=20,
        choices=Grade.choices,
        blank=True,
        default='',
        verbose_name=_('Grade'),
    )
    status = models.CharField(
        max_length=20,
        choices=BaleStatus.choices,
        default=BaleStatus.IN_STOCK,
        db_index=True,
        verbose_name=_('Status'),
    )
    lab_status = models.CharField(
        max_length=20,
        choices=LabStatus.choices,
        default=LabStatus.PENDING,
        db_index=True,
        verbose_name=_('Lab status'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BaleQuerySet.as_manager()

    class Meta:
        verbose_name = _('Bale')
        verbose_name_plural = _('Bales')
        ordering = ['lot', 'order_no']
        constraints = [
            models.UniqueConstraint(
                fields=['lot', 'order_no'],
                name='unique_bale_order_per_lot',
            ),
            models.CheckConstraint(
                condition=Q(net_weight__gte=0),
                name='bale_net_weight_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'lab_status'], name='bale_status_lab_idx'),
        ]

    @property
    def is_eligible(self) -> bool:
        return self.lab_status == LabStatus.APPROVED and self.status == BaleStatus.IN_STOCK

    def __str__(self) -> str:
        return f"{self.qr_code} {self.net_weight}kg [{self.status}]"
