"""
Checklist models — ordered, reserved bale selection for a customer.
"""

from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import ACTIVE_CHECKLIST_STATUSES, ChecklistStatus
from baleman.summary import ChecklistSummary


class ChecklistQuerySet(models.QuerySet):

    def active(self):
        """Checklists holding exclusive bale reservations."""
        return self.filter(status__in=ACTIVE_CHECKLIST_STATUSES)


class Checklist(models.Model):
    """
    Bale selection prepared for a customer order.

    LIFECYCLE:

        ┌───────┐ confirm() ┌───────────┐ lock() ┌────────┐
        │ DRAFT │ ────────► │ CONFIRMED │ ─────► │ LOCKED │ ──► create_shipment()
        └───────┘           └───────────┘        └────────┘
            ▲                                      │    ▲
            │ approve_modification()               │    │ reject_modification()
            │                   request_modification()  │
            │                                      ▼    │
            └────────────────────────── MODIFICATION_REQUESTED

    Items can only be added/removed while DRAFT. Bales stay reserved
    through every state; deleting a DRAFT checklist releases them.

    A LOCKED checklist is scanned bale by bale at the loading dock
    (scan_bale); create_shipment() needs every item scanned.
    """

    workspace_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Workspace'))
    customer_id = models.CharField(max_length=64, db_index=True, verbose_name=_('Customer'))
    customer_name = models.CharField(max_length=200, blank=True, default='', verbose_name=_('Customer name'))
    order_id = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Order'))

    status = models.CharField(
        max_length=30,
        choices=ChecklistStatus.choices,
        default=ChecklistStatus.DRAFT,
        db_index=True,
        verbose_name=_('Status'),
    )

    created_by = models.CharField(max_length=100, verbose_name=_('Created by'))
    confirmed_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Confirmed by'))
    locked_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Locked by'))

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Confirmed at'))
    locked_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Locked at'))
    modification_requested_at = models.DateTimeField(null=True, blank=True)
    modification_reason = models.TextField(blank=True, default='')

    # Derived from items, rewritten on every mutation
    summary = models.JSONField(default=dict, blank=True, verbose_name=_('Summary'))
    total_items = models.PositiveIntegerField(default=0, verbose_name=_('Items'))
    total_weight = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Total weight'),
    )

    notes = models.TextField(blank=True, default='')

    objects = ChecklistQuerySet.as_manager()

    class Meta:
        verbose_name = _('Checklist')
        verbose_name_plural = _('Checklists')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['workspace_id', 'status'], name='checklist_workspace_status_idx'),
        ]

    @property
    def scanned_items(self) -> int:
        return self.items.filter(scanned_at__isnull=False).count()

    @property
    def fully_scanned(self) -> bool:
        """Every item was scanned at the loading dock."""
        return self.items.exists() and not self.items.filter(scanned_at__isnull=True).exists()

    def compute_summary(self) -> ChecklistSummary:
        return ChecklistSummary.from_items(self.items.order_by('position'))

    def refresh_summary(self) -> ChecklistSummary:
        """Recompute derived fields from the items (does not save)."""
        summary = self.compute_summary()
        self.summary = summary.as_dict()
        self.total_items = summary.total_items
        self.total_weight = summary.total_weight
        return summary

    def __str__(self) -> str:
        return f"Checklist {self.pk} [{self.status}] {self.customer_name or self.customer_id}"


class ChecklistItem(models.Model):
    """
    One reserved bale inside a checklist.

    Snapshot fields (qr_code, net_weight, grade, quality_score,
    lot_number) are copied from the bale when the item is added.
    """

    checklist = models.ForeignKey(
        Checklist,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Checklist'),
    )
    bale = models.ForeignKey(
        'baleman.Bale',
        on_delete=models.PROTECT,
        related_name='checklist_items',
        verbose_name=_('Bale'),
    )
    lot = models.ForeignKey(
        'baleman.Lot',
        on_delete=models.PROTECT,
        related_name='+',
        verbose_name=_('Lot'),
    )
    position = models.PositiveIntegerField(verbose_name=_('Position'))

    qr_code = models.CharField(max_length=64, verbose_name=_('QR code'))
    lot_number = models.PositiveIntegerField(verbose_name=_('Lot number'))
    net_weight = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_('Net'))
    grade = models.CharField(max_length=20, blank=True, default='', verbose_name=_('Grade'))
    quality_score = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Quality score'),
    )
    added_at = models.DateTimeField(default=timezone.now)
    scanned_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Scanned at'))
    scanned_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Scanned by'))

    class Meta:
        verbose_name = _('Checklist item')
        verbose_name_plural = _('Checklist items')
        ordering = ['checklist', 'position']
        constraints = [
            # A bale is never reserved twice: released bales lose their item
            models.UniqueConstraint(fields=['bale'], name='unique_bale_reservation'),
        ]
        indexes = [
            models.Index(fields=['checklist', 'position'], name='checklist_item_position_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.position}: {self.qr_code} {self.net_weight}kg"
