"""
Baleman services — one class per component.

Re-exported so callers can compose them:
    from baleman.services import ChecklistEngine, ShipmentDispatcher
"""

from baleman.services.bales import BaleStore
from baleman.services.checklists import ChecklistEngine
from baleman.services.lab import LabGate
from baleman.services.lots import LotRegistry
from baleman.services.modifications import ModificationWorkflow
from baleman.services.shipments import ShipmentDispatcher

__all__ = [
    'LotRegistry',
    'BaleStore',
    'LabGate',
    'ChecklistEngine',
    'ModificationWorkflow',
    'ShipmentDispatcher',
]
