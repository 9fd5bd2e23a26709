"""Repository interfaces for the collaborators checkout reads and mutates."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities.catalog import CartLine, UserProfile


class UserRepository(ABC):

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass


class CartRepository(ABC):

    @abstractmethod
    async def get_lines(self, user_id: str) -> List[CartLine]:
        """Load the user's cart with product and variant attached."""
        pass

    @abstractmethod
    async def clear(self, user_id: str) -> int:
        """Remove every cart line for the user. Returns the number removed."""
        pass


class StockRepository(ABC):

    @abstractmethod
    async def decrement(self, variant_id: str, quantity: int) -> int:
        """Decrement a variant's stock without going below zero.

        Returns:
            Units that could not be taken from stock (0 when fully covered)
        """
        pass
