"""
ModificationRequest model — post-lock correction proposal.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import RequestStatus
from baleman.summary import ChecklistSnapshot


class ModificationRequestQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=RequestStatus.PENDING)


class ModificationRequest(models.Model):
    """
    Request to re-open a locked checklist for editing.

    Rules:
    - At most one PENDING request per checklist
    - ``checklist_summary`` is captured at request time and NEVER
      changes afterwards; later checklist edits don't touch it
    - Survives deletion of its (draft) checklist
    """

    checklist = models.ForeignKey(
        'baleman.Checklist',
        on_delete=models.SET_NULL,
        null=True,
        related_name='modification_requests',
        verbose_name=_('Checklist'),
    )
    requested_by = models.CharField(max_length=100, verbose_name=_('Requested by'))
    requested_by_role = models.CharField(max_length=50, verbose_name=_('Role'))
    reason = models.TextField(verbose_name=_('Reason'))

    status = models.CharField(
        max_length=20,
        choices=RequestStatus.choices,
        default=RequestStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    reviewed_by = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Reviewed by'))
    reviewed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Reviewed at'))
    review_note = models.TextField(blank=True, default='', verbose_name=_('Review note'))

    checklist_summary = models.JSONField(
        verbose_name=_('Checklist snapshot'),
        help_text=_('Totals at request time, for audit comparison'),
    )

    created_at = models.DateTimeField(default=timezone.now)

    objects = ModificationRequestQuerySet.as_manager()

    class Meta:
        verbose_name = _('Modification request')
        verbose_name_plural = _('Modification requests')
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['checklist'],
                condition=Q(status='pending'),
                name='one_pending_request_per_checklist',
            ),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._frozen_summary = instance.__dict__.get('checklist_summary')
        return instance

    def save(self, *args, **kwargs):
        """Save, refusing to rewrite the frozen snapshot."""
        frozen = getattr(self, '_frozen_summary', None)
        if self.pk and frozen is not None and self.checklist_summary != frozen:
            raise ValueError(
                "Checklist snapshot is immutable once the request is recorded."
            )
        super().save(*args, **kwargs)
        self._frozen_summary = dict(self.checklist_summary)

    @property
    def snapshot(self) -> ChecklistSnapshot:
        return ChecklistSnapshot.from_dict(self.checklist_summary)

    def __str__(self) -> str:
        return f"Request {self.pk} for checklist {self.checklist_id} [{self.status}]"
