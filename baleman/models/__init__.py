"""
Baleman Models.

Core models for bale tracking:
- Lot: Production batch with bounded capacity
- Bale: Weighed unit, lifecycle and lab status
- LabResult: Grading outcome per bale
- Checklist / ChecklistItem: Ordered reservation for a customer
- ModificationRequest: Post-lock correction proposal
- Shipment: Dispatch of a locked checklist
"""

from baleman.models.bale import Bale
from baleman.models.checklist import Checklist, ChecklistItem
from baleman.models.enums import (
    BaleStatus,
    ChecklistStatus,
    Grade,
    LabStatus,
    LotStatus,
    ProductType,
    RequestStatus,
    ShipmentStatus,
)
from baleman.models.lab import LabResult
from baleman.models.lot import Lot
from baleman.models.modification import ModificationRequest
from baleman.models.shipment import Shipment

__all__ = [
    'ProductType',
    'LotStatus',
    'BaleStatus',
    'LabStatus',
    'Grade',
    'ChecklistStatus',
    'RequestStatus',
    'ShipmentStatus',
    'Lot',
    'Bale',
    'LabResult',
    'Checklist',
    'ChecklistItem',
    'ModificationRequest',
    'Shipment',
]
