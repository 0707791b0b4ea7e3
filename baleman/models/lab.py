"""
LabResult model — grading outcome for one bale.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from baleman.models.enums import Grade, LabStatus


class LabResult(models.Model):
    """
    Lab sample measured on a bale.

    The status here is mirrored on ``Bale.lab_status``; LabGate keeps the
    two in step inside one transaction.
    """

    bale = models.OneToOneField(
        'baleman.Bale',
        on_delete=models.CASCADE,
        related_name='lab_result',
        verbose_name=_('Bale'),
    )
    grade = models.CharField(
        max_length=20,
        choices=Grade.choices,
        verbose_name=_('Grade'),
    )

    moisture = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, verbose_name=_('Moisture %'))
    trash = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True, verbose_name=_('Trash %'))
    navi = models.PositiveSmallIntegerField(null=True, blank=True, verbose_name=_('Navi'))
    strength = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_('Strength'))
    length_mm = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True, verbose_name=_('Length (mm)'))
    comment = models.TextField(blank=True, default='', verbose_name=_('Comment'))

    status = models.CharField(
        max_length=20,
        choices=LabStatus.choices,
        default=LabStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    analyst = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Analyst'))
    reviewer = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Reviewer'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    reviewed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Reviewed at'))

    class Meta:
        verbose_name = _('Lab result')
        verbose_name_plural = _('Lab results')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.bale_id}: {self.grade} [{self.status}]"
