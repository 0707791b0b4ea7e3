"""
Warehouse — the single public interface for bale operations.

Usage:
    from baleman import warehouse, Actor

    actor = Actor(id='u-17', role='warehouse')
    checklist = warehouse.create_checklist('cust-9', 'ws-1', actor)
    warehouse.add_bales(checklist.pk, [101, 102], actor)
    warehouse.confirm(checklist.pk, actor)
    warehouse.lock(checklist.pk, actor)

Every mutating method takes the calling ``Actor`` last among its required
arguments and checks the actor's capability before touching the database.
"""

from baleman.services.bales import BaleStore
from baleman.services.checklists import ChecklistEngine
from baleman.services.lab import LabGate
from baleman.services.lots import LotRegistry
from baleman.services.modifications import ModificationWorkflow
from baleman.services.shipments import ShipmentDispatcher


class Warehouse(
    LotRegistry,
    BaleStore,
    LabGate,
    ChecklistEngine,
    ModificationWorkflow,
    ShipmentDispatcher,
):
    """
    Single interface for all bale operations.

    IMPORTANT: All state-changing methods use atomic transactions
    with row locks or conditional updates. See each method's docstring.
    """
