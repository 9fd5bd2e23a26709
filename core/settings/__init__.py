# Settings package
from core.settings.modules import (
    ApiSettings,
    AppSettings,
    DatabaseSettings,
    PhonePeSettings,
    get_app_settings,
)

__all__ = [
    "get_app_settings",
    "AppSettings",
    "ApiSettings",
    "DatabaseSettings",
    "PhonePeSettings",
]
