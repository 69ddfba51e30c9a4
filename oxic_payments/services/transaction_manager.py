"""
Transaction Manager
In-memory tracking and audit trail for STK push payment attempts.

Records live for the lifetime of the process and are never evicted.
Lookups are only as good as the warm instance serving the request.
"""

import hashlib
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from oxic_payments.utils.logger import get_logger

logger = get_logger(__name__)


class TransactionStatus(str, Enum):
    INITIATED = 'INITIATED'
    WAITING = 'WAITING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'
    CANCELLED = 'CANCELLED'


# Only consulted when the manager runs with strict_transitions=True
ALLOWED_TRANSITIONS = {
    TransactionStatus.INITIATED: frozenset({
        TransactionStatus.WAITING,
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.WAITING: frozenset({
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.FAILED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PaymentTransaction:
    transaction_id: str
    merchant_request_id: str
    checkout_request_id: str
    phone_number: str
    amount: float
    account_reference: str
    transaction_desc: str
    status: TransactionStatus
    created_at: datetime
    updated_at: datetime
    response_code: Optional[str] = None
    response_message: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None


@dataclass
class TransactionLog:
    transaction_id: str
    action: str
    details: Dict[str, Any]
    timestamp: datetime = field(default_factory=_utcnow)


class TransactionManager:
    """Registry of payment attempts keyed by our transaction ID and by CheckoutRequestID"""

    def __init__(self, prefix: str = 'OXIC', strict_transitions: bool = False,
                 clock: Callable[[], datetime] = _utcnow):
        self.prefix = prefix
        self.strict_transitions = strict_transitions
        self._clock = clock
        self._transactions: Dict[str, PaymentTransaction] = {}
        self._by_checkout_id: Dict[str, str] = {}
        self._logs: Dict[str, List[TransactionLog]] = {}
        self._lock = threading.RLock()

    def generate_transaction_id(self) -> str:
        """
        Generate a human-readable transaction ID

        Format: PREFIX-YYYYMMDD-<12 hex>-<4 hex checksum>
        Example: OXIC-20260204-a7f2b3c1d4e5-5d8e

        The checksum is a truncated sha256 of the random part and the date.
        Collisions are not checked; 48 random bits make them negligible.
        """
        date_str = self._clock().strftime('%Y%m%d')
        random_hex = secrets.token_hex(6)
        checksum = hashlib.sha256(f'{random_hex}{date_str}'.encode('utf-8')).hexdigest()[:4]
        return f'{self.prefix}-{date_str}-{random_hex}-{checksum}'

    def create_transaction(
            self,
            merchant_request_id: str,
            checkout_request_id: str,
            phone_number: str,
            amount: float,
            account_reference: str,
            transaction_desc: str,
            customer_email: Optional[str] = None,
            customer_name: Optional[str] = None
    ) -> PaymentTransaction:
        """Record a payment attempt the provider has accepted."""
        now = self._clock()
        transaction = PaymentTransaction(
            transaction_id=self.generate_transaction_id(),
            merchant_request_id=merchant_request_id,
            checkout_request_id=checkout_request_id,
            phone_number=phone_number,
            amount=amount,
            account_reference=account_reference,
            transaction_desc=transaction_desc,
            status=TransactionStatus.INITIATED,
            created_at=now,
            updated_at=now,
            customer_email=customer_email,
            customer_name=customer_name,
        )

        with self._lock:
            self._transactions[transaction.transaction_id] = transaction
            if checkout_request_id:
                self._by_checkout_id[checkout_request_id] = transaction.transaction_id
            self._logs[transaction.transaction_id] = []

            self.log_action(transaction.transaction_id, 'CREATED', {
                'status': TransactionStatus.INITIATED.value,
                'amount': amount,
                'phone_number': phone_number,
            })

        logger.info(f'Transaction created: {transaction.transaction_id}')
        return transaction

    def update_transaction_status(
            self,
            transaction_id: str,
            status: TransactionStatus,
            response_code: Optional[str] = None,
            response_message: Optional[str] = None
    ) -> Optional[PaymentTransaction]:
        """
        Overwrite a transaction's status and provider response fields

        Returns:
            The updated transaction, or None when the ID is unknown, the
            status is not a TransactionStatus value, or the transition is
            illegal under strict_transitions. Never raises.
        """
        try:
            status = TransactionStatus(status)
        except ValueError:
            logger.error(f'Unknown transaction status for {transaction_id}: {status!r}')
            return None

        with self._lock:
            transaction = self._transactions.get(transaction_id)

            if transaction is None:
                logger.error(f'Transaction not found: {transaction_id}')
                return None

            if self.strict_transitions and status not in ALLOWED_TRANSITIONS[transaction.status]:
                logger.error(
                    f'Illegal status transition for {transaction_id}: '
                    f'{transaction.status.value} -> {status.value}'
                )
                self.log_action(transaction_id, 'TRANSITION_REJECTED', {
                    'from': transaction.status.value,
                    'to': status.value,
                })
                return None

            transaction.status = status
            transaction.response_code = response_code
            transaction.response_message = response_message
            transaction.updated_at = self._clock()

            self.log_action(transaction_id, 'STATUS_UPDATED', {
                'status': status.value,
                'response_code': response_code,
                'response_message': response_message,
            })

        logger.info(f'Transaction updated: {transaction_id} -> {status.value}')
        return transaction

    def log_action(self, transaction_id: str, action: str, details: Dict[str, Any]) -> None:
        """Append an entry to a transaction's audit trail."""
        entry = TransactionLog(
            transaction_id=transaction_id,
            action=action,
            details=details,
            timestamp=self._clock(),
        )

        with self._lock:
            self._logs.setdefault(transaction_id, []).append(entry)

        logger.info(f'Transaction log: {transaction_id} {action} {details}')

    def get_transaction(self, transaction_id: str) -> Optional[PaymentTransaction]:
        return self._transactions.get(transaction_id)

    def get_transaction_by_checkout_id(self, checkout_request_id: str) -> Optional[PaymentTransaction]:
        """Find a transaction by the CheckoutRequestID Daraja returned."""
        with self._lock:
            transaction_id = self._by_checkout_id.get(checkout_request_id)
            if transaction_id is None:
                return None
            return self._transactions.get(transaction_id)

    def get_transaction_logs(self, transaction_id: str) -> List[TransactionLog]:
        with self._lock:
            return list(self._logs.get(transaction_id, []))

    def get_all_transactions(self) -> List[PaymentTransaction]:
        with self._lock:
            return list(self._transactions.values())

    def export_transaction_for_invoice(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        """Flatten a transaction into the fields an invoice or receipt needs."""
        transaction = self._transactions.get(transaction_id)

        if transaction is None:
            return None

        exported = {
            'transactionId': transaction.transaction_id,
            'date': transaction.created_at.isoformat(),
            'amount': transaction.amount,
            'phone': transaction.phone_number,
            'reference': transaction.account_reference,
            'status': transaction.status.value,
            'description': transaction.transaction_desc,
        }
        if transaction.customer_name:
            exported['customerName'] = transaction.customer_name
        if transaction.customer_email:
            exported['customerEmail'] = transaction.customer_email

        return exported

    def count_by_status(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in TransactionStatus}
        for transaction in self.get_all_transactions():
            counts[transaction.status.value] += 1
        return counts

    def __len__(self):
        return len(self._transactions)
