"""PhonePe payment gateway adapter."""

from .client import PhonePePaymentGateway

__all__ = ["PhonePePaymentGateway"]
