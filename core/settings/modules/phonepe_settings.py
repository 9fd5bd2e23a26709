from __future__ import annotations

from typing import List, Literal

from pydantic import Field

from core.settings.base import StorefrontBaseSettings


class PhonePeSettings(StorefrontBaseSettings):
    """
    PhonePe Standard Checkout settings.
    Loaded from .env file with exact variable name matching.
    """

    # OAuth client credentials
    client_id: str = Field(default="", alias="PHONEPE_CLIENT_ID")
    client_secret: str = Field(default="", alias="PHONEPE_CLIENT_SECRET")
    client_version: int = Field(default=1, alias="PHONEPE_CLIENT_VERSION")

    env: Literal["sandbox", "production"] = Field(default="sandbox", alias="PHONEPE_ENV")

    # Webhook basic credentials configured on the PhonePe dashboard
    callback_username: str = Field(default="", alias="PHONEPE_CALLBACK_USERNAME")
    callback_password: str = Field(default="", alias="PHONEPE_CALLBACK_PASSWORD")

    timeout_seconds: float = Field(default=15.0, alias="PHONEPE_TIMEOUT_SECONDS")
    order_expire_seconds: int = Field(default=1200, alias="PHONEPE_ORDER_EXPIRE_SECONDS")
    currency: str = Field(default="INR", alias="PHONEPE_CURRENCY")

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    def missing_credentials(self) -> List[str]:
        """Return env variable names of required credentials that are not set."""
        required = {
            "PHONEPE_CLIENT_ID": self.client_id,
            "PHONEPE_CLIENT_SECRET": self.client_secret,
            "PHONEPE_CALLBACK_USERNAME": self.callback_username,
            "PHONEPE_CALLBACK_PASSWORD": self.callback_password,
        }
        return [name for name, value in required.items() if not value]
