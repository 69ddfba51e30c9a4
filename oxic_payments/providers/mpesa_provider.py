"""
M-Pesa Payment Provider
Lipa na M-Pesa Online (STK Push) over the Safaricom Daraja API.

Flow for one push-payment attempt
---------------------------------
1. Config check      – credentials and callback URL must resolve, else 503
2. Token acquisition – GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
3. Push submission   – POST /mpesa/stkpush/v1/processrequest                   (Bearer auth)
4. Interpretation    – ResponseCode "0" means the prompt reached the phone,
                       NOT that the customer has paid. The outcome arrives
                       later on the callback URL.

Configuration is read from the environment on every call so that rotated
secrets take effect on the next request:

    MPESA_CONSUMER_KEY, MPESA_CONSUMER_SECRET, MPESA_PASSKEY, MPESA_SHORTCODE,
    MPESA_ENV ("sandbox" | "production"), MPESA_CALLBACK_URL,
    MPESA_ALLOW_DEGRADED_AUTH

Without a passkey the STK password is derived from shortcode + timestamp
only. Some test accounts work that way; it is refused unless
MPESA_ALLOW_DEGRADED_AUTH is set.
"""

import base64
import math
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from oxic_payments.config import env_flag
from oxic_payments.errors import (
    AppError,
    ConfigurationError,
    ProviderRejection,
    ProviderTransportError,
    ValidationError,
)
from oxic_payments.providers.base import PaymentProvider, WebhookProcessingError
from oxic_payments.utils.logger import get_logger
from oxic_payments.utils.validators import (
    format_kenyan_phone_number,
    normalize_callback_url,
    validate_amount,
)

logger = get_logger(__name__)

# Daraja base URLs
_BASE_URLS = {
    "sandbox":    "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

SUCCESS_RESPONSE_CODE = "0"
SUCCESS_RESULT_CODE = "0"
DEFAULT_TIMEOUT = 15

DEFAULT_ACCOUNT_REFERENCE = "TheOxicGroup"
DEFAULT_TRANSACTION_DESC = "Investment Payment"

CONFIGURATION_ERROR_MESSAGE = (
    "M-Pesa payments are temporarily unavailable. Please contact support."
)


@dataclass
class MpesaConfig:
    consumer_key: str
    consumer_secret: str
    passkey: str
    shortcode: str
    environment: str
    callback_url: str
    allow_degraded_auth: bool = False


def get_mpesa_config() -> MpesaConfig:
    """Read M-Pesa settings from the environment. Called per request, never cached."""
    return MpesaConfig(
        consumer_key=os.getenv("MPESA_CONSUMER_KEY", ""),
        consumer_secret=os.getenv("MPESA_CONSUMER_SECRET", ""),
        passkey=os.getenv("MPESA_PASSKEY", ""),
        shortcode=os.getenv("MPESA_SHORTCODE", ""),
        environment=os.getenv("MPESA_ENV", "production").strip().lower(),
        callback_url=os.getenv("MPESA_CALLBACK_URL", ""),
        allow_degraded_auth=env_flag("MPESA_ALLOW_DEGRADED_AUTH"),
    )


def validate_mpesa_config(config: Optional[MpesaConfig] = None) -> Dict[str, Any]:
    """
    Check that the credentials needed for a push payment are present.

    Returns:
        Dict with is_valid, missing (env var names) and error
    """
    config = config or get_mpesa_config()
    missing: List[str] = []

    if not config.consumer_key:
        missing.append("MPESA_CONSUMER_KEY")
    if not config.consumer_secret:
        missing.append("MPESA_CONSUMER_SECRET")
    if not config.passkey and not config.allow_degraded_auth:
        missing.append("MPESA_PASSKEY")
    if not config.shortcode:
        missing.append("MPESA_SHORTCODE")

    if missing:
        return {
            "is_valid": False,
            "missing": missing,
            "error": f"Missing M-Pesa credentials: {', '.join(missing)}",
        }

    if config.environment not in _BASE_URLS:
        return {
            "is_valid": False,
            "missing": [],
            "error": f"MPESA_ENV must be 'sandbox' or 'production', got '{config.environment}'",
        }

    return {"is_valid": True, "missing": [], "error": None}


def get_mpesa_base_url(environment: str) -> str:
    return _BASE_URLS["production"] if environment == "production" else _BASE_URLS["sandbox"]


def generate_timestamp() -> str:
    """Daraja timestamp, YYYYMMDDHHmmss in local time."""
    return datetime.now().strftime("%Y%m%d%H%M%S")


def generate_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """
    Password = Base64(BusinessShortCode + Passkey + Timestamp)

    An empty passkey yields Base64(BusinessShortCode + Timestamp).
    """
    raw = f"{shortcode}{passkey or ''}{timestamp}"
    return base64.b64encode(raw.encode("utf-8")).decode("utf-8")


def _find_item(items: List[Dict[str, Any]], name: str, default: Any = None) -> Any:
    # Daraja does not guarantee item order
    for item in items:
        if isinstance(item, dict) and item.get("Name") == name:
            value = item.get("Value")
            return default if value is None else value
    return default


def parse_stk_callback(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse an STK Push callback envelope (Body.stkCallback).

    Raises:
        WebhookProcessingError: if the envelope has no stkCallback
    """
    body = payload.get("Body") if isinstance(payload, dict) else None
    stk = body.get("stkCallback") if isinstance(body, dict) else None
    if not isinstance(stk, dict):
        raise WebhookProcessingError("Invalid callback structure: missing Body.stkCallback")

    result_code = str(stk.get("ResultCode", ""))
    is_success = result_code == SUCCESS_RESULT_CODE

    items: List[Dict[str, Any]] = []
    if is_success:
        metadata = stk.get("CallbackMetadata") or {}
        items = metadata.get("Item") or []

    return {
        "checkout_request_id":  stk.get("CheckoutRequestID", ""),
        "merchant_request_id":  stk.get("MerchantRequestID", ""),
        "result_code":          result_code,
        "result_desc":          stk.get("ResultDesc") or "Unknown result",
        "is_success":           is_success,
        "amount":               _find_item(items, "Amount", 0),
        "mpesa_receipt_number": _find_item(items, "MpesaReceiptNumber", "N/A"),
        "transaction_date":     _find_item(items, "TransactionDate", datetime.now().isoformat()),
        "phone_number":         _find_item(items, "PhoneNumber", stk.get("PhoneNumber", "N/A")),
    }


# Provider

class MPesaProvider(PaymentProvider):
    """M-Pesa (Daraja API) STK push client."""

    # Daraja endpoint paths
    _EP_AUTH     = "/oauth/v1/generate"
    _EP_STK_PUSH = "/mpesa/stkpush/v1/processrequest"

    def __init__(self, config: MpesaConfig, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(config)
        self.timeout = timeout
        self.base_url = get_mpesa_base_url(config.environment)

        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    # PaymentProvider ABC

    def initialize_payment(
        self,
        amount: float,
        customer_data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        metadata = metadata or {}
        return self.initiate_stk_push(
            phone_number=customer_data.get("phone", ""),
            amount=amount,
            account_reference=metadata.get("account_reference"),
            transaction_desc=metadata.get("transaction_desc"),
            callback_url=metadata.get("callback_url"),
        )

    # Public

    def initiate_stk_push(
        self,
        phone_number: str,
        amount: float,
        account_reference: Optional[str] = None,
        transaction_desc: Optional[str] = None,
        callback_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an STK push prompt to the customer's phone.

        Never raises for expected failures; they come back as
        {"success": False, "error", "error_type", "status_code", "response_code"}.

        Returns on success:
            success, message, checkout_request_id, merchant_request_id,
            response_code, phone_number (normalised), amount (rounded half up)
        """
        try:
            return self._stk_push(
                phone_number,
                amount,
                account_reference or DEFAULT_ACCOUNT_REFERENCE,
                transaction_desc or DEFAULT_TRANSACTION_DESC,
                callback_url,
            )
        except ConfigurationError as exc:
            logger.error(f"M-Pesa configuration error: {exc.message}")
            return self._failure(exc, CONFIGURATION_ERROR_MESSAGE)
        except ProviderTransportError as exc:
            logger.error(f"M-Pesa API error: {exc.message}")
            return self._failure(exc, ProviderTransportError.error)
        except ProviderRejection as exc:
            logger.warning(f"M-Pesa STK push rejected ({exc.response_code}): {exc.message}")
            return self._failure(exc, exc.message)
        except ValidationError as exc:
            return self._failure(exc, exc.message)

    def get_access_token(self) -> str:
        """Exchange consumer key/secret for a bearer token. No retries."""
        credentials = f"{self.config.consumer_key}:{self.config.consumer_secret}"
        auth = base64.b64encode(credentials.encode("utf-8")).decode("utf-8")
        url = f"{self.base_url}{self._EP_AUTH}?grant_type=client_credentials"

        try:
            resp = requests.get(
                url,
                headers={"Authorization": f"Basic {auth}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderTransportError(f"OAuth request failed – {exc}") from exc

        if not resp.ok:
            raise ProviderTransportError(
                f"Failed to get access token: HTTP {resp.status_code} – {resp.text[:300]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderTransportError("OAuth response is not JSON") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ProviderTransportError("No access token in response")

        logger.info("M-Pesa: access token obtained (expires in %ss)", data.get("expires_in"))
        return token

    # Private

    def _stk_push(
        self,
        phone_number: str,
        amount: float,
        account_reference: str,
        transaction_desc: str,
        callback_url: Optional[str],
    ) -> Dict[str, Any]:
        is_valid, error = validate_amount(amount)
        if not is_valid:
            raise ValidationError(error)

        phone, error = format_kenyan_phone_number(phone_number)
        if error:
            raise ValidationError(error)

        self._check_config()
        final_callback_url = self._resolve_callback_url(callback_url)

        token = self.get_access_token()

        timestamp = generate_timestamp()
        if not self.config.passkey:
            logger.warning(
                "M-Pesa: MPESA_PASSKEY not set, deriving STK password from shortcode + timestamp"
            )
        password = generate_password(self.config.shortcode, self.config.passkey, timestamp)

        payload = {
            "BusinessShortCode": self.config.shortcode,
            "Password":          password,
            "Timestamp":         timestamp,
            "TransactionType":   "CustomerPayBillOnline",
            "Amount":            int(math.floor(amount + 0.5)),
            "PartyA":            phone,
            "PartyB":            self.config.shortcode,
            "PhoneNumber":       phone,
            "CallBackURL":       final_callback_url,
            "AccountReference":  account_reference,
            "TransactionDesc":   transaction_desc,
        }

        logger.info(
            f"M-Pesa: sending STK push - Amount: {payload['Amount']}, "
            f"Phone: {phone}, ShortCode: {self.config.shortcode}"
        )

        url = f"{self.base_url}{self._EP_STK_PUSH}"
        try:
            resp = self._session.post(
                url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type":  "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderTransportError(f"STK push request failed – {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderTransportError(
                f"STK push returned non-JSON body (HTTP {resp.status_code})"
            ) from exc

        if not isinstance(data, dict):
            raise ProviderTransportError(f"Unexpected STK push response: {data!r}")

        response_code = data.get("ResponseCode")
        if response_code is not None and str(response_code) == SUCCESS_RESPONSE_CODE:
            logger.info(f"M-Pesa: STK push accepted - {data.get('CheckoutRequestID')}")
            return {
                "success":             True,
                "message":             "STK push sent successfully. Please check your phone to complete the payment.",
                "checkout_request_id": data.get("CheckoutRequestID"),
                "merchant_request_id": data.get("MerchantRequestID"),
                "response_code":       str(response_code),
                "phone_number":        phone,
                "amount":              payload["Amount"],
            }

        raise ProviderRejection(
            data.get("errorMessage")
            or data.get("ResponseDescription")
            or "Failed to initiate payment",
            response_code=response_code if response_code is not None else data.get("errorCode"),
        )

    def _check_config(self) -> None:
        validation = validate_mpesa_config(self.config)
        if not validation["is_valid"]:
            raise ConfigurationError(validation["error"])

    def _resolve_callback_url(self, callback_url: Optional[str]) -> str:
        """Explicit URL wins over MPESA_CALLBACK_URL."""
        candidate = callback_url or self.config.callback_url
        if not candidate:
            raise ConfigurationError("No callback URL configured (MPESA_CALLBACK_URL)")

        normalized, error = normalize_callback_url(candidate)
        if error:
            raise ConfigurationError(f"{error}: {candidate}")
        return normalized

    @staticmethod
    def _failure(exc: AppError, message: str) -> Dict[str, Any]:
        return {
            "success":       False,
            "error":         message,
            "error_type":    type(exc).__name__,
            "status_code":   exc.status_code,
            "response_code": getattr(exc, "response_code", None),
        }
