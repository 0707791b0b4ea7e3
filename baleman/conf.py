"""
Baleman configuration.

Usage in settings.py:
    BALEMAN = {
        "DEFAULT_LOT_CAPACITY": 220,
        "MAX_BATCH_SIZE": 500,
        "TRACKING_PREFIX": "TRK",
        "ROLE_CAPABILITIES": {
            "admin": ["*"],
            "warehouse": ["checklists.edit", "checklists.lock", "checklists.scan"],
        },
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


def _default_role_capabilities() -> dict[str, list[str]]:
    return {
        'admin': ['*'],
        'warehouse': [
            'checklists.edit',
            'checklists.lock',
            'checklists.scan',
            'modifications.request',
            'shipments.dispatch',
        ],
        'production': ['lots.manage', 'bales.register'],
        'operator': ['bales.register'],
        'lab': ['lab.grade'],
    }


@dataclass
class BalemanSettings:
    """Baleman configuration settings."""

    # Capacity of a new lot when none is given
    DEFAULT_LOT_CAPACITY: int = 220

    # Upper bound on bale ids accepted by a single add_bales call
    MAX_BATCH_SIZE: int = 500

    # Prefix for generated shipment tracking numbers
    TRACKING_PREFIX: str = 'TRK'

    # Role name -> capability names ("*" grants everything)
    ROLE_CAPABILITIES: dict[str, list[str]] = field(default_factory=_default_role_capabilities)


def get_baleman_settings() -> BalemanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "BALEMAN", {})
    return BalemanSettings(**{
        k: v for k, v in user_settings.items()
        if k in BalemanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_baleman_settings(), name)


baleman_settings = _LazySettings()
