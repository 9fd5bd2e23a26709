"""
PhonePe Standard Checkout (v2) payment gateway.

Talks to the PhonePe REST API with aiohttp:
- OAuth client-credentials token, cached until shortly before expiry
- POST /checkout/v2/pay to create a payment order
- GET /checkout/v2/order/{merchantOrderId}/status to poll
- webhook validation against the dashboard-configured credentials
"""
from typing import Any, Dict, Optional, Tuple
import asyncio
import hashlib
import hmac
import json
import logging
import time

import aiohttp

from core.application.dtos.payment_dto import (
    CallbackPayload,
    CallbackResponse,
    GatewayOrder,
    GatewayOrderStatus,
    PaymentAttempt,
)
from core.application.interfaces import IPaymentGateway
from core.domain.exceptions import (
    CallbackValidationError,
    GatewayConfigurationError,
    PaymentGatewayError,
)
from core.settings.modules.phonepe_settings import PhonePeSettings


logger = logging.getLogger(__name__)


SANDBOX_BASE_URL = "https://api-preprod.phonepe.com/apis/pg-sandbox"
SANDBOX_TOKEN_URL = f"{SANDBOX_BASE_URL}/v1/oauth/token"
PRODUCTION_BASE_URL = "https://api.phonepe.com/apis/pg"
PRODUCTION_TOKEN_URL = "https://api.phonepe.com/apis/identity-manager/v1/oauth/token"

PAY_PATH = "/checkout/v2/pay"
STATUS_PATH = "/checkout/v2/order/{merchant_order_id}/status"

# Refresh the access token this many seconds before it expires
TOKEN_REFRESH_MARGIN_SECONDS = 60


class PhonePePaymentGateway(IPaymentGateway):
    """
    PhonePe implementation of the payment gateway.

    One instance is built at application startup and shared; the
    aiohttp session is created on first use and closed by close().
    """

    def __init__(
        self,
        settings: PhonePeSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize PhonePe gateway.

        Args:
            settings: PhonePe credentials and environment
            session: Optional externally owned aiohttp session

        Raises:
            GatewayConfigurationError: If client credentials are missing
        """
        if not settings.client_id or not settings.client_secret:
            raise GatewayConfigurationError("PhonePe credentials not configured")

        self.settings = settings
        if settings.is_production:
            self.base_url = PRODUCTION_BASE_URL
            self.token_url = PRODUCTION_TOKEN_URL
        else:
            self.base_url = SANDBOX_BASE_URL
            self.token_url = SANDBOX_TOKEN_URL

        self._timeout = aiohttp.ClientTimeout(total=settings.timeout_seconds)
        self._session = session
        self._owns_session = session is None

        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

        logger.info(
            f"PhonePePaymentGateway initialized (env={settings.env}, "
            f"client_version={settings.client_version})"
        )

    # =========================================================================
    # GATEWAY OPERATIONS
    # =========================================================================

    async def create_order(
        self,
        amount_minor_units: int,
        redirect_url: str,
        merchant_order_id: str,
    ) -> GatewayOrder:
        logger.info(
            f"[{merchant_order_id}] Creating PhonePe order (amount={amount_minor_units} paise)"
        )

        body = {
            "merchantOrderId": merchant_order_id,
            "amount": amount_minor_units,
            "expireAfter": self.settings.order_expire_seconds,
            "paymentFlow": {
                "type": "PG_CHECKOUT",
                "merchantUrls": {"redirectUrl": redirect_url},
            },
        }
        data = await self._authorized_request("POST", PAY_PATH, json_body=body)

        gateway_order_id = data.get("orderId")
        checkout_url = data.get("redirectUrl")
        if not gateway_order_id or not checkout_url:
            raise PaymentGatewayError("PhonePe pay response missing orderId or redirectUrl")

        logger.info(
            f"[{merchant_order_id}] ✅ PhonePe order created: {gateway_order_id} "
            f"(state={data.get('state')})"
        )
        return GatewayOrder(
            gateway_order_id=gateway_order_id,
            redirect_url=checkout_url,
            expire_at=data.get("expireAt"),
            state=data.get("state") or "PENDING",
        )

    async def get_order_status(self, merchant_order_id: str) -> GatewayOrderStatus:
        logger.info(f"[{merchant_order_id}] Checking PhonePe order status")

        path = STATUS_PATH.format(merchant_order_id=merchant_order_id)
        data = await self._authorized_request("GET", path)

        if not data.get("state"):
            raise PaymentGatewayError("PhonePe status response missing state")

        try:
            status = GatewayOrderStatus(
                gateway_order_id=data.get("orderId"),
                state=data["state"],
                amount=int(data.get("amount") or 0),
                expire_at=data.get("expireAt"),
                payment_attempts=[
                    _parse_attempt(attempt) for attempt in data.get("paymentDetails") or []
                ],
                raw=data,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise PaymentGatewayError(f"PhonePe status response malformed: {e}") from e
        logger.info(f"[{merchant_order_id}] PhonePe state: {status.state}")
        return status

    def validate_callback(self, auth_header: Optional[str], raw_body: bytes) -> CallbackResponse:
        """
        Validate and normalize a PhonePe webhook.

        PhonePe sends ``Authorization: <sha256("username:password") hex>``
        using the credentials configured on the merchant dashboard.

        Raises:
            CallbackValidationError: Bad credentials or malformed body
        """
        username = self.settings.callback_username
        password = self.settings.callback_password
        if not username or not password:
            raise CallbackValidationError("Callback credentials not configured")

        expected = hashlib.sha256(f"{username}:{password}".encode("utf-8")).hexdigest()
        supplied = (auth_header or "").strip().lower()
        if not supplied or not hmac.compare_digest(supplied, expected):
            raise CallbackValidationError("Invalid callback authorization")

        try:
            body = json.loads(raw_body)
        except (TypeError, ValueError) as e:
            raise CallbackValidationError("Callback body is not valid JSON") from e

        if not isinstance(body, dict):
            raise CallbackValidationError("Callback body must be a JSON object")

        event_type = _normalize_event_type(body)
        payload = body.get("payload")
        if not event_type or not isinstance(payload, dict):
            raise CallbackValidationError("Callback missing event type or payload")

        merchant_order_id = payload.get("merchantOrderId")
        state = payload.get("state")
        if not merchant_order_id or not state:
            raise CallbackValidationError("Callback payload missing merchantOrderId or state")

        attempts = payload.get("paymentDetails") or []
        first_attempt = attempts[0] if attempts and isinstance(attempts[0], dict) else {}

        try:
            normalized = CallbackPayload(
                merchant_order_id=merchant_order_id,
                gateway_order_id=payload.get("orderId"),
                transaction_id=first_attempt.get("transactionId"),
                amount=int(payload.get("amount") or 0),
                state=state,
                error_code=payload.get("errorCode") or first_attempt.get("errorCode"),
                payment_mode=first_attempt.get("paymentMode"),
                timestamp=first_attempt.get("timestamp"),
            )
        except (TypeError, ValueError) as e:
            raise CallbackValidationError(f"Callback payload malformed: {e}") from e

        logger.info(
            f"[{merchant_order_id}] PhonePe callback validated (type={event_type}, state={state})"
        )
        return CallbackResponse(type=event_type, payload=normalized, raw=body)

    async def close(self) -> None:
        """Close the aiohttp session if this gateway created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.info("PhonePe HTTP session closed")
        self._session = None

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _get_access_token(self) -> str:
        """Return a cached OAuth token, fetching a new one when near expiry."""
        async with self._token_lock:
            now = time.time()
            if self._access_token and now < self._token_expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
                return self._access_token

            logger.info("Fetching PhonePe access token")
            status, data = await self._send(
                "POST",
                self.token_url,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                form={
                    "client_id": self.settings.client_id,
                    "client_version": str(self.settings.client_version),
                    "client_secret": self.settings.client_secret,
                    "grant_type": "client_credentials",
                },
            )
            if status >= 400:
                raise PaymentGatewayError(
                    f"PhonePe token request failed with HTTP {status}", status_code=status
                )

            token = data.get("access_token")
            if not token:
                raise PaymentGatewayError("PhonePe token response missing access_token")

            self._access_token = token
            self._token_expires_at = float(data.get("expires_at") or now + 300)
            return token

    async def _authorized_request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        token = await self._get_access_token()
        status, data = await self._send(
            method,
            f"{self.base_url}{path}",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"O-Bearer {token}",
            },
            json_body=json_body,
        )
        if status == 401:
            # Token revoked or expired early; next call fetches a new one
            self._access_token = None
        if status >= 400:
            code = data.get("code") or data.get("errorCode") or ""
            raise PaymentGatewayError(
                f"PhonePe {method} {path} failed with HTTP {status} {code}".strip(),
                status_code=status,
            )
        return data

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json_body: Optional[Dict[str, Any]] = None,
        form: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Perform one HTTP call.

        Returns:
            (HTTP status, decoded JSON object or {})

        Raises:
            PaymentGatewayError: Network failure, timeout or undecodable body
        """
        session = await self._get_session()
        try:
            async with session.request(
                method, url, headers=headers, json=json_body, data=form
            ) as response:
                text = await response.text()
                status = response.status
        except asyncio.TimeoutError as e:
            raise PaymentGatewayError(f"PhonePe request timed out: {method} {url}") from e
        except aiohttp.ClientError as e:
            raise PaymentGatewayError(f"PhonePe request failed: {e}") from e

        if not text:
            return status, {}
        try:
            data = json.loads(text)
        except ValueError as e:
            if status >= 400:
                return status, {}
            raise PaymentGatewayError(f"PhonePe returned non-JSON body (HTTP {status})") from e
        return status, data if isinstance(data, dict) else {}


def _normalize_event_type(body: Dict[str, Any]) -> Optional[str]:
    """'checkout.order.completed' -> 'CHECKOUT_ORDER_COMPLETED'."""
    event = body.get("event")
    if isinstance(event, str) and event:
        return event.upper().replace(".", "_")
    event_type = body.get("type")
    return event_type if isinstance(event_type, str) and event_type else None


def _parse_attempt(attempt: Dict[str, Any]) -> PaymentAttempt:
    return PaymentAttempt(
        transaction_id=attempt.get("transactionId"),
        payment_mode=attempt.get("paymentMode"),
        state=attempt.get("state"),
        amount=attempt.get("amount"),
        timestamp=attempt.get("timestamp"),
        error_code=attempt.get("errorCode"),
    )
