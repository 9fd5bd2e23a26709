from __future__ import annotations

from typing import List

from pydantic import Field

from core.settings.base import StorefrontBaseSettings


class ApiSettings(StorefrontBaseSettings):
    """HTTP layer and service tuning settings."""

    log_level: str = Field(default="INFO", alias="STOREFRONT_LOG_LEVEL")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"],
        alias="STOREFRONT_CORS_ORIGINS",
    )

    # Pagination envelope defaults
    default_page_size: int = Field(default=10, alias="STOREFRONT_DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="STOREFRONT_MAX_PAGE_SIZE")

    order_number_max_attempts: int = Field(
        default=10, alias="STOREFRONT_ORDER_NUMBER_MAX_ATTEMPTS"
    )
