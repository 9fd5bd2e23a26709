"""Application layer interfaces."""
from abc import ABC, abstractmethod
from typing import Optional

from core.application.dtos.payment_dto import (
    CallbackResponse,
    GatewayOrder,
    GatewayOrderStatus,
)


class IPaymentGateway(ABC):
    """
    Interface for payment gateway operations.

    Isolates the remote gateway behind three calls so the application
    layer can be exercised against a fake. Implementations raise
    PaymentGatewayError when the call itself fails; a gateway reporting
    a failed payment is a normal GatewayOrderStatus, not an exception.
    """

    @abstractmethod
    async def create_order(
        self,
        amount_minor_units: int,
        redirect_url: str,
        merchant_order_id: str,
    ) -> GatewayOrder:
        """
        Create a remote payment order.

        Args:
            amount_minor_units: Amount already converted to minor units
            redirect_url: Where the gateway sends the customer afterwards
            merchant_order_id: Our correlation id (generated by the caller)

        Returns:
            GatewayOrder with the hosted checkout redirect URL

        Raises:
            PaymentGatewayError: Network failure, timeout or non-2xx reply
        """
        pass

    @abstractmethod
    async def get_order_status(self, merchant_order_id: str) -> GatewayOrderStatus:
        """
        Query the gateway's current status for a payment order.

        Raises:
            PaymentGatewayError: Network failure, timeout or non-2xx reply
        """
        pass

    @abstractmethod
    def validate_callback(self, auth_header: Optional[str], raw_body: bytes) -> CallbackResponse:
        """
        Authenticate and normalize an inbound webhook.

        Raises:
            CallbackValidationError: Bad credentials or malformed body
        """
        pass

    async def close(self) -> None:
        """Release network resources (default: nothing to release)."""
        pass


__all__ = ["IPaymentGateway"]
