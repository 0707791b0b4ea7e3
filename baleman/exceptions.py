"""
Exceptions for Baleman.

All errors are BaleError subclasses with a structured code for
programmatic handling. The subclass tells the caller what kind of
failure happened; ``data`` carries the failing entity id and its
current state so a terminal can re-fetch and retry.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Exception with a machine-readable code and context data.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class BaleError(BaseError):
    """
    Structured exception for bale, lot, checklist and shipment operations.

    Usage:
        try:
            warehouse.add_bales(checklist.pk, [b1.pk, b2.pk], actor)
        except IneligibleBale as e:
            for bale_id, reason in e.failures.items():
                print(bale_id, reason)
    """

    default_code = 'BALE_ERROR'

    _default_messages = {
        'BALE_ERROR': 'Operation failed',
        'INVALID_STATE': 'Operation not allowed in the current state',
        'INELIGIBLE_BALE': 'Bale is not eligible for reservation',
        'CAPACITY_EXCEEDED': 'Lot is full',
        'DUPLICATE_REQUEST': 'A modification request is already pending',
        'INVALID_TRANSITION': 'Status transition not allowed',
        'NOT_FOUND': 'Entity not found',
        'NOT_PERMITTED': 'Role is not allowed to perform this operation',
        'INVALID_WEIGHT': 'Tare cannot exceed gross weight',
        'INVALID_QUANTITY': 'Quantity must be positive',
        'INSUFFICIENT_AVAILABLE': 'Not enough eligible bales',
        'LOT_NUMBER_TAKEN': 'Lot number already exists for this product type',
        'ORDER_NO_TAKEN': 'Order number already used in this lot',
        'BATCH_TOO_LARGE': 'Too many bales in a single request',
        'REASON_REQUIRED': 'Reason is required',
        'INVALID_PRODUCT_TYPE': 'Unknown product type',
        'INVALID_STATUS': 'Unknown status',
        'INVALID_GRADE': 'Unknown grade',
        'WAYBILL_REQUIRED': 'Waybill number is required',
        'INVALID_DOCUMENT': 'Unknown shipment document',
        'ALREADY_SCANNED': 'Bale was already scanned',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        super().__init__(code or self.default_code, message, **data)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class InvalidState(BaleError):
    """Operation not valid for the entity's current lifecycle state."""

    default_code = 'INVALID_STATE'

    @property
    def current(self):
        return self.data.get('current')


class IneligibleBale(BaleError):
    """
    One or more bales failed the reservation precondition.

    ``failures`` maps bale id -> reason code for every bale that failed;
    ``bale_id`` is the first one in request order.
    """

    default_code = 'INELIGIBLE_BALE'

    @property
    def bale_id(self):
        return self.data.get('bale_id')

    @property
    def failures(self) -> dict:
        return self.data.get('failures', {})


class CapacityExceeded(BaleError):
    """Lot has no free slots."""

    default_code = 'CAPACITY_EXCEEDED'


class DuplicateRequest(BaleError):
    """A pending modification request already exists for the checklist."""

    default_code = 'DUPLICATE_REQUEST'


class InvalidTransition(BaleError):
    """Illegal status move (shipment or lot)."""

    default_code = 'INVALID_TRANSITION'


class NotFound(BaleError):
    default_code = 'NOT_FOUND'


class NotPermitted(BaleError):
    """Actor's role lacks the capability required by the operation."""

    default_code = 'NOT_PERMITTED'
