"""Settings API — site-wide configuration, admins only.

Learn: Settings are one row with a JSON column per section. PUT replaces
a single section after validating it against that section's model;
the other five are left untouched.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import request_context, require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.common import DataResponse
from backoffice.schemas.settings import SettingsDocument, SettingsUpdate
from backoffice.services.activity_log import RequestContext
from backoffice.services.settings_service import SettingsService

router = APIRouter(prefix="/settings")


def _svc(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db)


@router.get("", response_model=DataResponse[SettingsDocument])
async def get_settings(
    actor: User = Depends(require_admin),
    svc: SettingsService = Depends(_svc),
):
    return DataResponse(data=await svc.get_settings())


@router.put("", response_model=DataResponse[SettingsDocument])
async def update_settings(
    body: SettingsUpdate,
    actor: User = Depends(require_admin),
    svc: SettingsService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    document = await svc.update_section(actor, body.section, body.data, ctx)
    return DataResponse(data=document, message="Settings updated successfully")
