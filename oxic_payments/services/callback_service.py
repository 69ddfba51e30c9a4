"""
Callback Service
Reconciles Daraja STK push result notifications against tracked transactions
"""

from typing import Dict, Any

from marshmallow import ValidationError as SchemaValidationError

from oxic_payments.providers.base import WebhookProcessingError
from oxic_payments.providers.mpesa_provider import parse_stk_callback
from oxic_payments.schemas.callback_schema import MPesaCallbackSchema
from oxic_payments.services.transaction_manager import TransactionManager, TransactionStatus
from oxic_payments.utils.logger import get_logger

logger = get_logger(__name__)

callback_schema = MPesaCallbackSchema()

# Daraja ResultCode -> tracked status
_RESULT_CODE_MAP: Dict[str, TransactionStatus] = {
    "0":    TransactionStatus.COMPLETED,
    "1032": TransactionStatus.CANCELLED,   # Request cancelled by user
}


def map_result_code(result_code: str) -> TransactionStatus:
    return _RESULT_CODE_MAP.get(str(result_code), TransactionStatus.FAILED)


class CallbackService:
    """Service for handling STK push callbacks"""

    @staticmethod
    def process_callback(payload: Dict[str, Any], tracker: TransactionManager) -> Dict[str, Any]:
        """
        Apply a callback to the matching transaction

        The business outcome (paid, failed, cancelled) is only logged and
        recorded; it is never signalled back to Daraja.

        Args:
            payload: Parsed callback JSON
            tracker: Transaction store to reconcile against

        Returns:
            Dict with the extracted payment details, the mapped status and
            the matched transaction_id (None when no transaction matched)

        Raises:
            WebhookProcessingError: if the envelope is not an STK callback
        """
        try:
            callback_schema.load(payload if isinstance(payload, dict) else {})
        except SchemaValidationError as e:
            raise WebhookProcessingError(f'Invalid callback structure: {e.messages}') from e

        details = parse_stk_callback(payload)
        status = map_result_code(details['result_code'])

        if details['is_success']:
            logger.info(
                f"Payment successful: receipt {details['mpesa_receipt_number']}, "
                f"amount {details['amount']}, phone {details['phone_number']}"
            )
        else:
            logger.info(f"Payment failed: {details['result_desc']} (ResultCode {details['result_code']})")

        transaction = tracker.get_transaction_by_checkout_id(details['checkout_request_id'])

        if transaction is None:
            logger.error(
                f"Callback for unknown CheckoutRequestID: {details['checkout_request_id']}"
            )
            return {**details, 'status': status.value, 'transaction_id': None, 'updated': False}

        tracker.log_action(transaction.transaction_id, 'CALLBACK_RECEIVED', {
            'result_code': details['result_code'],
            'result_desc': details['result_desc'],
            'mpesa_receipt_number': details['mpesa_receipt_number'],
            'amount': details['amount'],
            'transaction_date': details['transaction_date'],
            'phone_number': details['phone_number'],
        })

        updated = tracker.update_transaction_status(
            transaction.transaction_id,
            status,
            response_code=details['result_code'],
            response_message=details['result_desc'],
        )

        return {
            **details,
            'status': status.value,
            'transaction_id': transaction.transaction_id,
            'updated': updated is not None,
        }
