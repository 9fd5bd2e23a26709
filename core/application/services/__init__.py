"""Application services."""
from .order_admin_service import OrderAdminService
from .order_number_generator import OrderNumberGenerator
from .order_query_service import OrderQueryService
from .payment_reconciliation_service import PaymentReconciliationService

__all__ = [
    "OrderAdminService",
    "OrderNumberGenerator",
    "OrderQueryService",
    "PaymentReconciliationService",
]
