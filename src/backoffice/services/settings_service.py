"""Site settings — a single row, six JSON sections, merged over defaults."""

from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.models import Category, Severity, SiteSettings, User
from backoffice.errors import ValidationError
from backoffice.schemas.settings import SECTION_MODELS, SettingsDocument
from backoffice.services.activity_log import ActivityRecorder, RequestContext

SETTINGS_ROW_ID = 1


def _field_errors(exc: PydanticValidationError) -> dict[str, list[str]]:
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        key = ".".join(str(p) for p in err.get("loc", ())) or "data"
        fields.setdefault(key, []).append(err.get("msg", "Invalid value"))
    return fields


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityRecorder(db)

    async def _row(self) -> SiteSettings:
        """Fetch the singleton row, creating it with defaults on first use."""
        row = await self.db.get(SiteSettings, SETTINGS_ROW_ID)
        if row is None:
            defaults = SettingsDocument().model_dump(mode="json", by_alias=True)
            row = SiteSettings(id=SETTINGS_ROW_ID, **defaults)
            self.db.add(row)
            await self.db.commit()
        return row

    @staticmethod
    def to_document(row: SiteSettings) -> SettingsDocument:
        """Stored sections may be partial or stale; validation fills the gaps."""
        return SettingsDocument.model_validate(
            {name: getattr(row, name) or {} for name in SECTION_MODELS}
        )

    async def get_settings(self) -> SettingsDocument:
        return self.to_document(await self._row())

    async def update_section(
        self, actor: User, section: str, data: dict[str, Any], ctx: RequestContext
    ) -> SettingsDocument:
        """Validate one section and replace it wholesale."""
        model = SECTION_MODELS.get(section)
        if model is None:
            raise ValidationError("Invalid section")
        try:
            validated = model.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError("Validation failed", details=_field_errors(exc))

        row = await self._row()
        setattr(row, section, validated.model_dump(mode="json", by_alias=True))
        await self.db.commit()

        await self.activity.create_log(
            actor.id,
            "UPDATE_SETTINGS",
            "settings",
            f"Updated {section} settings",
            category=Category.SETTINGS.value,
            severity=Severity.MEDIUM.value,
            resource_id=section,
            metadata={"section": section},
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return self.to_document(row)
