"""Domain value objects - pure Python immutable types."""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

_CENT = Decimal("0.01")
_MINOR_UNITS_PER_MAJOR = 100


@dataclass(frozen=True)
class Money:
    """
    Immutable monetary value with currency.

    Amounts are always Decimal in the major unit (rupees), quantized
    to two places. The gateway works in minor units (paise); use
    to_minor_units() at that boundary.

    CRITICAL: Always use Decimal, never float!
    """
    amount: Decimal
    currency: str = "INR"

    def __post_init__(self):
        # Convert to Decimal if needed
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        object.__setattr__(
            self, 'amount', self.amount.quantize(_CENT, rounding=ROUND_HALF_UP)
        )

        # Validate currency code (3 letters)
        if not isinstance(self.currency, str) or len(self.currency) != 3:
            raise ValueError(
                f"Currency must be 3-letter ISO code, got: {self.currency}"
            )

    @classmethod
    def zero(cls, currency: str = "INR") -> 'Money':
        return cls(amount=Decimal("0"), currency=currency)

    def to_minor_units(self) -> int:
        """Convert to the gateway's integer minor unit."""
        return to_minor_units(self.amount)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def __add__(self, other: 'Money') -> 'Money':
        """Add two Money objects (must have same currency)."""
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add different currencies: {self.currency} vs {other.currency}"
            )
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two Money objects (must have same currency)."""
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot subtract different currencies: {self.currency} vs {other.currency}"
            )
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __mul__(self, quantity: int) -> 'Money':
        """Multiply by an integer quantity."""
        if not isinstance(quantity, int):
            raise TypeError(f"Money can only be multiplied by int, got {type(quantity).__name__}")
        return Money(amount=self.amount * quantity, currency=self.currency)

    def is_negative(self) -> bool:
        """Check if amount is negative."""
        return self.amount < 0


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Rounds half-up to the nearest minor unit: 199.999 -> 20000.
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return int((amount * _MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor_units: int) -> Decimal:
    """Convert integer minor units back to a major-unit Decimal with 2 places."""
    return (Decimal(int(minor_units)) / _MINOR_UNITS_PER_MAJOR).quantize(_CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MerchantOrderId:
    """
    Identifier sent to the payment gateway to correlate a local order
    with a remote payment session. Independent of the order number.
    """

    value: str

    def __post_init__(self):
        if not self.value:
            raise ValueError("Merchant order ID cannot be empty")
        # PhonePe accepts up to 63 chars of [A-Za-z0-9_-]
        if len(self.value) > 63:
            raise ValueError(f"Merchant order ID too long: {self.value}")
        if not all(ch.isalnum() or ch in "-_" for ch in self.value):
            raise ValueError(f"Merchant order ID has invalid characters: {self.value}")

    @classmethod
    def generate(cls) -> "MerchantOrderId":
        """Generate a new MerchantOrderId."""
        return cls(value=str(uuid4()))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Address:
    """Postal address snapshot captured at order time."""

    name: str
    phone: str
    address: str
    city: str
    state: str
    country: str
    zip_code: str

    def __post_init__(self):
        for field_name in ("name", "phone", "address", "city", "state", "country", "zip_code"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Address field '{field_name}' is required")
            object.__setattr__(self, field_name, value.strip())

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Address"]:
        if not data:
            return None
        return cls(
            name=data["name"],
            phone=data["phone"],
            address=data["address"],
            city=data["city"],
            state=data["state"],
            country=data["country"],
            zip_code=data["zip_code"],
        )


@dataclass(frozen=True)
class CustomerDetails:
    """Customer contact snapshot captured at order time."""

    name: str
    email: str
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerDetails":
        return cls(name=data.get("name", ""), email=data.get("email", ""), phone=data.get("phone"))
