"""Order number generation."""
from typing import Optional
import logging
import random

from core.domain.repositories import OrderRepository
from core.domain.value_objects import OrderNumber


logger = logging.getLogger(__name__)

_LOWEST = 10_000_000
_HIGHEST = 99_999_999


class OrderNumberGenerator:
    """
    Produces unique 8-digit order numbers.

    Each draw is checked against the store before it is handed out. Two
    concurrent checkouts can still pick the same number; the unique
    constraint on orders.order_number catches that at insert. Callers
    spend ``max_attempts`` across both kinds of collision.
    """

    def __init__(self, max_attempts: int = 10, rng: Optional[random.Random] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._rng = rng or random.SystemRandom()

    def candidate(self) -> OrderNumber:
        return OrderNumber(value=str(self._rng.randint(_LOWEST, _HIGHEST)))

    async def try_generate(self, orders: OrderRepository) -> Optional[OrderNumber]:
        """Draw one candidate; None when a stored order already uses it."""
        number = self.candidate()
        if await orders.order_number_exists(number):
            logger.warning(f"Order number collision on {number}")
            return None
        return number
