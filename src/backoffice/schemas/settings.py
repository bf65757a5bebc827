"""Site settings: six independently updated sections.

Every section model carries defaults for every field, so a stored section
is merged over the defaults simply by validating it.
"""

from typing import Any, Literal, Optional, Union

from pydantic import EmailStr, Field

from backoffice.schemas.common import URL_OR_EMPTY, CamelModel

SectionName = Literal["general", "notifications", "security", "appearance", "integrations", "backup"]


class GeneralSettings(CamelModel):
    site_name: str = Field("Four Eyed Gems", min_length=1)
    site_description: Optional[str] = "Comprehensive admin panel for Four Eyed Gems management"
    site_url: str = Field("https://admin.example.com", pattern=r"^https?://\S+$")
    admin_email: EmailStr = "admin@example.com"
    timezone: str = Field("UTC", min_length=1)
    language: str = Field("en", min_length=1)


class NotificationSettings(CamelModel):
    email_notifications: bool = True
    sms_notifications: bool = False
    push_notifications: bool = True
    inquiry_alerts: bool = True
    project_updates: bool = True
    system_alerts: bool = True


class PasswordPolicy(CamelModel):
    min_length: int = Field(8, ge=6, le=32)
    require_uppercase: bool = True
    require_numbers: bool = True
    require_symbols: bool = False


class SecuritySettings(CamelModel):
    two_factor_auth: bool = False
    session_timeout: int = Field(30, ge=5, le=480)
    password_policy: PasswordPolicy = Field(default_factory=PasswordPolicy)
    ip_whitelist: list[str] = Field(default_factory=list)


class AppearanceSettings(CamelModel):
    theme: Literal["light", "dark", "system"] = "system"
    primary_color: str = Field("#4B49AC", pattern=r"^#[0-9A-Fa-f]{6}$")
    logo: str = Field("", pattern=URL_OR_EMPTY)
    favicon: str = Field("", pattern=URL_OR_EMPTY)


class IntegrationSettings(CamelModel):
    google_analytics: str = ""
    facebook_pixel: str = ""
    mailchimp_api_key: str = ""
    slack_webhook: str = Field("", pattern=URL_OR_EMPTY)


class BackupSettings(CamelModel):
    auto_backup: bool = True
    backup_frequency: Literal["daily", "weekly", "monthly"] = "daily"
    backup_retention: int = Field(30, ge=1, le=365)
    last_backup: Optional[str] = None


SectionModel = Union[
    GeneralSettings,
    NotificationSettings,
    SecuritySettings,
    AppearanceSettings,
    IntegrationSettings,
    BackupSettings,
]

SECTION_MODELS: dict[str, type[CamelModel]] = {
    "general": GeneralSettings,
    "notifications": NotificationSettings,
    "security": SecuritySettings,
    "appearance": AppearanceSettings,
    "integrations": IntegrationSettings,
    "backup": BackupSettings,
}


class SettingsDocument(CamelModel):
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    appearance: AppearanceSettings = Field(default_factory=AppearanceSettings)
    integrations: IntegrationSettings = Field(default_factory=IntegrationSettings)
    backup: BackupSettings = Field(default_factory=BackupSettings)


class SettingsUpdate(CamelModel):
    section: SectionName
    data: dict[str, Any]
