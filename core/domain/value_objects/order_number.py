"""Order number value object."""
from dataclasses import dataclass

ORDER_NUMBER_LENGTH = 8


@dataclass(frozen=True)
class OrderNumber:
    """
    Human-facing order identifier shown to customers.

    Format: 8 numeric digits, e.g. 48213907.
    Distinct from both the storage key and the merchant order ID.
    """
    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("Order number cannot be empty")

        if len(self.value) != ORDER_NUMBER_LENGTH or not self.value.isdigit():
            raise ValueError(
                f"Invalid order number (expected {ORDER_NUMBER_LENGTH} digits): {self.value}"
            )

    def __str__(self) -> str:
        return self.value
