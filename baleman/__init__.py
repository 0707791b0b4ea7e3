"""
Django Baleman — bale tracking from the press to the truck.

Usage:
    from baleman import warehouse, Actor, BaleError

    actor = Actor(id='u-17', role='warehouse')
    warehouse.add_bales(checklist_id, [101, 102], actor)
    warehouse.lock(checklist_id, actor)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'warehouse':
        from baleman.service import Warehouse
        return Warehouse
    elif name == 'Actor':
        from baleman.permissions import Actor
        return Actor
    elif name == 'Capability':
        from baleman.permissions import Capability
        return Capability
    elif name == 'Driver':
        from baleman.services.shipments import Driver
        return Driver
    elif name == 'BaleError':
        from baleman.exceptions import BaleError
        return BaleError
    elif name in ('Lot', 'Bale', 'LabResult', 'Checklist', 'ChecklistItem',
                  'ModificationRequest', 'Shipment'):
        from baleman import models
        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'warehouse',
    'Actor',
    'Capability',
    'Driver',
    'BaleError',
    'Lot',
    'Bale',
    'LabResult',
    'Checklist',
    'ChecklistItem',
    'ModificationRequest',
    'Shipment',
]

__version__ = '0.1.0'
