"""
M-Pesa API Endpoints
STK push initiation, Daraja result callbacks and transaction lookup
"""

from datetime import datetime, timezone

from flask import Blueprint, request, jsonify
from marshmallow import ValidationError as SchemaValidationError

from oxic_payments.errors import AppError, TransactionNotFound
from oxic_payments.extensions import get_transaction_manager
from oxic_payments.providers.base import WebhookProcessingError
from oxic_payments.schemas.payment_schema import StkPushRequestSchema, TransactionLogSchema
from oxic_payments.services.callback_service import CallbackService
from oxic_payments.services.payment_service import PaymentService
from oxic_payments.utils.decorators import rate_limit, require_trusted_origin, log_execution_time
from oxic_payments.utils.logger import get_logger, log_security_event
from oxic_payments.utils.security import get_client_ip
from oxic_payments.utils.validators import validate_payment_request

mpesa_bp = Blueprint('mpesa', __name__)
logger = get_logger(__name__)

stk_request_schema = StkPushRequestSchema()
transaction_logs_schema = TransactionLogSchema(many=True)


@mpesa_bp.route('', methods=['POST'])
@rate_limit
@require_trusted_origin
@log_execution_time
def initiate_stk_push():
    """
    Initiate an M-Pesa STK push

    Body:
        {
            "phoneNumber": "0712345678",
            "amount": 500,
            "accountReference": "TheOxicGroup",      // optional
            "transactionDesc": "Investment Payment", // optional
            "customerEmail": "jane@example.com",     // optional
            "customerName": "Jane Doe"               // optional
        }
    """
    client_ip = get_client_ip(request)

    try:
        body = request.get_json(silent=True)

        validation = validate_payment_request(body)
        if not validation['valid']:
            log_security_event('validation_failed', {'ip': client_ip, 'error': validation['error']})
            return jsonify({
                'success': False,
                'error': validation['error']
            }), 400

        try:
            data = stk_request_schema.load(body)
        except SchemaValidationError as e:
            logger.info(f'Rejected STK push fields: {e.messages}')
            return jsonify({
                'success': False,
                'error': 'Invalid customer details'
            }), 400

        data['phone_number'] = validation['normalized_phone']
        data['amount'] = validation['normalized_amount']

        transaction, result = PaymentService.initiate_payment(
            request_data=data,
            tracker=get_transaction_manager(),
            client_ip=client_ip
        )

        return jsonify({
            'success': True,
            'message': result['message'],
            'transactionId': transaction.transaction_id,
            'checkoutRequestID': transaction.checkout_request_id,
            'merchantRequestID': transaction.merchant_request_id
        }), 200

    except AppError as e:
        return jsonify({
            'success': False,
            'error': e.message
        }), e.status_code

    except Exception:
        logger.exception('M-Pesa request error')
        return jsonify({
            'success': False,
            'error': 'Failed to process payment request'
        }), 500


@mpesa_bp.route('/callback', methods=['POST'])
def mpesa_callback():
    """
    Receive the STK push result from Daraja

    Business outcomes (paid, failed, cancelled) are acknowledged with 200;
    only unreadable payloads produce an error status.
    """
    try:
        payload = request.get_json(force=True)
        logger.info(f'M-Pesa callback received: {payload}')

        CallbackService.process_callback(payload, get_transaction_manager())

        return jsonify({
            'success': True,
            'message': 'Callback received and processed',
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 200

    except WebhookProcessingError as e:
        logger.error(f'Invalid M-Pesa callback: {str(e)}')
        return jsonify({
            'success': False
        }), 400

    except Exception:
        logger.exception('M-Pesa callback error')
        return jsonify({
            'success': False,
            'error': 'Failed to process callback'
        }), 500


@mpesa_bp.route('/transactions/<transaction_id>', methods=['GET'])
@rate_limit
@require_trusted_origin
def get_transaction(transaction_id):
    """
    Get receipt details for a tracked transaction

    Path Parameters:
        - transaction_id: ID returned by the STK push endpoint (OXIC-YYYYMMDD-...)

    Guarded like the payment endpoint: per-IP quota and origin allow-list.
    """
    tracker = get_transaction_manager()
    exported = tracker.export_transaction_for_invoice(transaction_id)

    if exported is None:
        raise TransactionNotFound(TransactionNotFound.error)

    return jsonify({
        'success': True,
        'data': exported,
        'history': transaction_logs_schema.dump(tracker.get_transaction_logs(transaction_id))
    }), 200
