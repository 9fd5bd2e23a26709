"""Normalized payment gateway DTOs.

Gateway adapters translate their wire format into these models; the
reconciliation engine only ever reads these fields.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GatewayOrder(BaseModel):
    """Result of creating a remote payment order."""

    gateway_order_id: str = Field(..., description="Gateway's order identifier")
    redirect_url: str = Field(..., description="Hosted checkout page URL")
    expire_at: Optional[int] = Field(None, description="Expiry (epoch millis)")
    state: str = Field(default="PENDING", description="Gateway state")

    model_config = {"frozen": True}


class PaymentAttempt(BaseModel):
    """One payment attempt reported by the gateway."""

    transaction_id: Optional[str] = None
    payment_mode: Optional[str] = None
    state: Optional[str] = None
    amount: Optional[int] = None
    timestamp: Optional[int] = None
    error_code: Optional[str] = None

    model_config = {"frozen": True}


class GatewayOrderStatus(BaseModel):
    """Current gateway view of a payment order."""

    gateway_order_id: Optional[str] = None
    state: str
    amount: int = Field(default=0, ge=0, description="Amount in minor units")
    expire_at: Optional[int] = None
    payment_attempts: List[PaymentAttempt] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict, description="Unparsed gateway body")

    model_config = {"frozen": True}

    @property
    def latest_attempt(self) -> Optional[PaymentAttempt]:
        return self.payment_attempts[0] if self.payment_attempts else None


class CallbackPayload(BaseModel):
    """Normalized body of a validated gateway webhook."""

    merchant_order_id: str
    gateway_order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: int = Field(default=0, ge=0, description="Amount in minor units")
    state: str
    error_code: Optional[str] = None
    payment_mode: Optional[str] = None
    timestamp: Optional[int] = None

    model_config = {"frozen": True}


class CallbackResponse(BaseModel):
    """Validated webhook: event type plus normalized payload."""

    type: str
    payload: CallbackPayload
    raw: Dict[str, Any] = Field(default_factory=dict, description="Unparsed webhook body")

    model_config = {"frozen": True}
