from core.settings.modules.api_settings import ApiSettings
from core.settings.modules.app_settings import AppSettings, get_app_settings
from core.settings.modules.database_settings import DatabaseSettings
from core.settings.modules.phonepe_settings import PhonePeSettings

__all__ = [
    "ApiSettings",
    "AppSettings",
    "DatabaseSettings",
    "PhonePeSettings",
    "get_app_settings",
]
