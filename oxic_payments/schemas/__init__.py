"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from oxic_payments.schemas.payment_schema import (
    StkPushRequestSchema,
    TransactionLogSchema
)
from oxic_payments.schemas.callback_schema import (
    MPesaCallbackSchema
)

__all__ = [
    'StkPushRequestSchema',
    'TransactionLogSchema',
    'MPesaCallbackSchema'
]
