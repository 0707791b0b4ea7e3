"""
Enums for Baleman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ProductType(models.TextChoices):
    """Kind of fiber product a lot holds."""
    TOLA = 'TOLA', _('Fiber')
    LINT = 'LINT', _('Lint')
    SIKLON = 'SIKLON', _('Cyclone')
    ULUK = 'ULUK', _('Uluk')


class LotStatus(models.TextChoices):
    """Lot lifecycle status."""
    DRAFT = 'draft', _('Draft')
    ACTIVE = 'active', _('Active')       # Accepting new bales
    PAUSED = 'paused', _('Paused')
    CLOSED = 'closed', _('Closed')       # Terminal


class BaleStatus(models.TextChoices):
    """Bale lifecycle status."""
    IN_STOCK = 'in_stock', _('In stock')
    RESERVED = 'reserved', _('Reserved')   # Held by a checklist
    SHIPPED = 'shipped', _('Shipped')
    RETURNED = 'returned', _('Returned')   # Removed from lot count
    WASTE = 'waste', _('Waste')            # Removed from lot count


# Statuses that no longer count towards Lot.used
REMOVED_BALE_STATUSES = (BaleStatus.RETURNED, BaleStatus.WASTE)


class LabStatus(models.TextChoices):
    """Grading outcome, mirrored on the bale."""
    PENDING = 'pending', _('Pending')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class Grade(models.TextChoices):
    OLIY = 'OLIY', _('Premium')
    YAXSHI = 'YAXSHI', _('Good')
    ORTA = 'ORTA', _('Middling')
    ODDIY = 'ODDIY', _('Ordinary')
    IFLOS = 'IFLOS', _('Contaminated')


class ChecklistStatus(models.TextChoices):
    """Checklist lifecycle status."""
    DRAFT = 'draft', _('Draft')                          # Items editable
    CONFIRMED = 'confirmed', _('Confirmed')              # Items frozen
    LOCKED = 'locked', _('Locked')                       # Ready for dispatch
    MODIFICATION_REQUESTED = 'modification_requested', _('Modification requested')


# Statuses in which a checklist holds exclusive bale reservations
ACTIVE_CHECKLIST_STATUSES = (
    ChecklistStatus.DRAFT,
    ChecklistStatus.CONFIRMED,
    ChecklistStatus.LOCKED,
)


class RequestStatus(models.TextChoices):
    """Modification request review status."""
    PENDING = 'pending', _('Pending')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class ShipmentStatus(models.TextChoices):
    """Shipment delivery status."""
    PENDING = 'pending', _('Pending')
    PREPARING = 'preparing', _('Preparing')
    READY = 'ready', _('Ready')
    SHIPPED = 'shipped', _('Shipped')
    DELIVERED = 'delivered', _('Delivered')
    CANCELLED = 'cancelled', _('Cancelled')
