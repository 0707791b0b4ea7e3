"""
Pytest fixtures for Baleman tests.
"""

from decimal import Decimal

import pytest

from baleman import warehouse
from baleman.models import Grade, ProductType
from baleman.permissions import Actor
from baleman.services.shipments import Driver


@pytest.fixture
def admin_actor():
    return Actor(id='admin-1', role='admin')


@pytest.fixture
def clerk():
    """Warehouse role: edits, locks and dispatches checklists."""
    return Actor(id='clerk-1', role='warehouse')


@pytest.fixture
def producer():
    return Actor(id='prod-1', role='production')


@pytest.fixture
def analyst():
    return Actor(id='lab-1', role='lab')


@pytest.fixture
def lot(db, producer):
    """Active TOLA lot with default capacity."""
    return warehouse.create_lot(ProductType.TOLA, producer, selection='Bukhara-6')


@pytest.fixture
def small_lot(db, producer):
    """Active LINT lot that fits three bales."""
    return warehouse.create_lot(ProductType.LINT, producer, capacity=3)


@pytest.fixture
def make_bale(lot, producer, analyst):
    """
    Factory for registered bales.

    By default the bale is graded OLIY and approved, i.e. eligible for a
    checklist. ``approve=False`` leaves the lab result pending;
    ``grade=None`` skips the lab entirely.
    """
    def _make(gross='250.00', tare='2.50', grade=Grade.OLIY, approve=True,
              target=None, strength=None):
        bale = warehouse.register_bale((target or lot).pk, Decimal(gross), Decimal(tare), producer)
        if grade is not None:
            warehouse.record_lab_result(bale.pk, grade, analyst, strength=strength)
            if approve:
                warehouse.approve_lab_result(bale.pk, analyst)
        bale.refresh_from_db()
        return bale

    return _make


@pytest.fixture
def checklist(db, clerk):
    return warehouse.create_checklist('cust-1', 'ws-1', clerk, customer_name='Acme Textiles')


@pytest.fixture
def locked_checklist(checklist, make_bale, clerk):
    """Locked checklist holding two approved bales."""
    bales = [make_bale(), make_bale(gross='240.00')]
    warehouse.add_bales(checklist.pk, [b.pk for b in bales], clerk)
    warehouse.confirm(checklist.pk, clerk)
    return warehouse.lock(checklist.pk, clerk)


@pytest.fixture
def scanned_checklist(locked_checklist, clerk):
    """Locked checklist with every bale scanned at the dock, ready to ship."""
    for qr_code in locked_checklist.items.values_list('qr_code', flat=True):
        warehouse.scan_bale(locked_checklist.pk, qr_code, clerk)
    return locked_checklist


@pytest.fixture
def driver():
    return Driver(
        first_name='Rustam',
        last_name='Karimov',
        license_number='AB1234567',
        vehicle_number='01A777AA',
        phone='+998901234567',
        vehicle_type='Truck',
    )
