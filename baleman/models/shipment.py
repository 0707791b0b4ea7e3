"""
Shipment model — dispatch record for a locked checklist.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import ShipmentStatus

# Forward-only single steps; CANCELLED from every pre-SHIPPED state
ALLOWED_SHIPMENT_TRANSITIONS = {
    ShipmentStatus.PENDING: {ShipmentStatus.PREPARING, ShipmentStatus.CANCELLED},
    ShipmentStatus.PREPARING: {ShipmentStatus.READY, ShipmentStatus.CANCELLED},
    ShipmentStatus.READY: {ShipmentStatus.SHIPPED, ShipmentStatus.CANCELLED},
    ShipmentStatus.SHIPPED: {ShipmentStatus.DELIVERED},
    ShipmentStatus.DELIVERED: set(),
    ShipmentStatus.CANCELLED: set(),
}

DOCUMENT_KINDS = ('waybill', 'invoice', 'packing', 'quality')


class ShipmentQuerySet(models.QuerySet):

    def active(self):
        """Shipments that still own their checklist's bales."""
        return self.exclude(status=ShipmentStatus.CANCELLED)


class Shipment(models.Model):
    """
    Dispatch of a locked checklist.

    Rules:
    - total_items/total_weight are copied from the checklist summary on
      creation and NEVER change afterwards
    - Status only moves forward (see ALLOWED_SHIPMENT_TRANSITIONS)
    """

    checklist = models.ForeignKey(
        'baleman.Checklist',
        on_delete=models.PROTECT,
        related_name='shipments',
        verbose_name=_('Checklist'),
    )
    order_id = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Order'))
    customer_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Customer'))

    # Driver / vehicle
    driver_first_name = models.CharField(max_length=100, verbose_name=_('Driver first name'))
    driver_last_name = models.CharField(max_length=100, verbose_name=_('Driver last name'))
    driver_license = models.CharField(max_length=50, verbose_name=_('Driver license'))
    driver_phone = models.CharField(max_length=30, blank=True, default='', verbose_name=_('Driver phone'))
    vehicle_number = models.CharField(max_length=30, verbose_name=_('Vehicle number'))
    vehicle_type = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Vehicle type'))

    waybill_number = models.CharField(max_length=64, db_index=True, verbose_name=_('Waybill'))
    tracking_number = models.CharField(max_length=64, unique=True, verbose_name=_('Tracking number'))
    documents = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Documents'),
        help_text=_('Readiness flags: waybill, invoice, packing, quality'),
    )

    status = models.CharField(
        max_length=20,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    status_history = models.JSONField(default=list, blank=True)

    # Frozen at creation
    total_items = models.PositiveIntegerField(verbose_name=_('Items'))
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total weight'),
    )

    notes = models.TextField(blank=True, default='')
    shipped_by = models.CharField(max_length=100, verbose_name=_('Shipped by'))
    planned_delivery_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    recipient_name = models.CharField(max_length=200, blank=True, default='')
    recipient_signature = models.TextField(blank=True, default='')
    delivery_notes = models.TextField(blank=True, default='')

    objects = ShipmentQuerySet.as_manager()

    class Meta:
        verbose_name = _('Shipment')
        verbose_name_plural = _('Shipments')
        ordering = ['-created_at']

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._frozen_totals = (
            instance.__dict__.get('total_items'),
            instance.__dict__.get('total_weight'),
        )
        return instance

    def save(self, *args, **kwargs):
        """Save, refusing to rewrite the totals copied at creation."""
        frozen = getattr(self, '_frozen_totals', None)
        if self.pk and frozen is not None and frozen != (self.total_items, self.total_weight):
            raise ValueError(
                "Shipment totals are immutable. "
                "Cancel and dispatch the checklist again instead."
            )
        super().save(*args, **kwargs)
        self._frozen_totals = (self.total_items, self.total_weight)

    @property
    def driver_name(self) -> str:
        return f"{self.driver_first_name} {self.driver_last_name}".strip()

    @property
    def documents_ready(self) -> bool:
        return all(self.documents.get(kind) for kind in DOCUMENT_KINDS)

    def can_transition_to(self, status) -> bool:
        return status in ALLOWED_SHIPMENT_TRANSITIONS.get(self.status, set())

    def __str__(self) -> str:
        return f"{self.tracking_number} [{self.status}] {self.total_items} bales"
