"""
Capability checks at the service boundary.

The identity provider is external: callers hand every mutating operation
an ``Actor`` (id + role). Roles are mapped to capability sets through
``BALEMAN['ROLE_CAPABILITIES']`` so services never compare role strings.

Usage:
    actor = Actor(id='u-17', role='warehouse')
    require(actor, Capability.LOCK_CHECKLISTS)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from baleman.conf import baleman_settings
from baleman.exceptions import NotPermitted

WILDCARD = '*'


class Capability(str, Enum):
    """Operations guarded by a role check."""

    MANAGE_LOTS = 'lots.manage'
    REGISTER_BALES = 'bales.register'
    GRADE_BALES = 'lab.grade'
    EDIT_CHECKLISTS = 'checklists.edit'
    LOCK_CHECKLISTS = 'checklists.lock'
    SCAN_BALES = 'checklists.scan'
    DELETE_CHECKLISTS = 'checklists.delete'
    REQUEST_MODIFICATIONS = 'modifications.request'
    REVIEW_MODIFICATIONS = 'modifications.review'
    DISPATCH_SHIPMENTS = 'shipments.dispatch'


def capabilities_for(role: str) -> frozenset[str]:
    """Capability names granted to a role (empty for unknown roles)."""
    granted = baleman_settings.ROLE_CAPABILITIES.get(role, ())
    if WILDCARD in granted:
        return frozenset(c.value for c in Capability)
    return frozenset(granted)


@dataclass(frozen=True)
class Actor:
    """Caller identity supplied by the authentication layer."""

    id: str
    role: str

    @property
    def capabilities(self) -> frozenset[str]:
        return capabilities_for(self.role)

    def can(self, capability: Capability) -> bool:
        return Capability(capability).value in self.capabilities


def require(actor: Actor | None, capability: Capability) -> Actor:
    """
    Raise NotPermitted unless the actor holds the capability.

    Returns the actor so callers can chain: ``by = require(actor, ...).id``.
    """
    if actor is None or not actor.can(capability):
        raise NotPermitted(
            actor_id=getattr(actor, 'id', None),
            role=getattr(actor, 'role', None),
            capability=Capability(capability).value,
        )
    return actor
