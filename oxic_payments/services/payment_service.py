from typing import Dict, Any, Optional, Tuple

from oxic_payments.errors import AppError
from oxic_payments.providers import get_provider
from oxic_payments.providers.mpesa_provider import DEFAULT_ACCOUNT_REFERENCE, DEFAULT_TRANSACTION_DESC
from oxic_payments.services.transaction_manager import PaymentTransaction, TransactionManager
from oxic_payments.utils.logger import get_logger, log_security_event
from oxic_payments.utils.security import detect_suspicious_activity

logger = get_logger(__name__)


class PaymentService:
    """Drives an STK push from a guard-approved request to a tracked transaction"""

    @staticmethod
    def initiate_payment(
            request_data: Dict[str, Any],
            tracker: TransactionManager,
            client_ip: str = 'unknown',
            callback_url: Optional[str] = None
    ) -> Tuple[PaymentTransaction, Dict[str, Any]]:
        """
        Initiate an M-Pesa STK push and record it

        Args:
            request_data: Loaded StkPushRequestSchema data
            tracker: Transaction store to record the accepted attempt in
            client_ip: Caller IP, for the suspicious-activity log
            callback_url: Overrides MPESA_CALLBACK_URL when given

        Returns:
            Tuple of (transaction, provider_result)

        Raises:
            AppError: carrying the provider client's caller-safe message and
                status code when the push was not accepted
        """
        phone_number = request_data['phone_number']
        amount = request_data['amount']

        suspicious = detect_suspicious_activity(phone_number, amount, client_ip)
        if suspicious['is_suspicious']:
            log_security_event('suspicious_activity', {
                'ip': client_ip,
                'phone_number': phone_number,
                'amount': amount,
                'reason': suspicious['reason'],
            })

        provider = get_provider('mpesa')
        result = provider.initialize_payment(
            amount=amount,
            customer_data={
                'phone': phone_number,
                'email': request_data.get('customer_email'),
                'name': request_data.get('customer_name'),
            },
            metadata={
                'account_reference': request_data.get('account_reference'),
                'transaction_desc': request_data.get('transaction_desc'),
                'callback_url': callback_url,
            }
        )

        if not result['success']:
            raise AppError(result['error'], status_code=result['status_code'])

        transaction = tracker.create_transaction(
            merchant_request_id=result['merchant_request_id'],
            checkout_request_id=result['checkout_request_id'],
            phone_number=result['phone_number'],
            amount=amount,
            account_reference=request_data.get('account_reference') or DEFAULT_ACCOUNT_REFERENCE,
            transaction_desc=request_data.get('transaction_desc') or DEFAULT_TRANSACTION_DESC,
            customer_email=request_data.get('customer_email'),
            customer_name=request_data.get('customer_name'),
        )

        tracker.log_action(transaction.transaction_id, 'STK_PUSH_SENT', {
            'checkout_request_id': result['checkout_request_id'],
            'merchant_request_id': result['merchant_request_id'],
            'response_code': result['response_code'],
        })

        return transaction, result
