"""Activity log API — read-only view of the audit trail, admins only."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import require_admin
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.activity import ActivityList, ActivityRead
from backoffice.schemas.common import DataResponse, Pagination
from backoffice.services.activity_log import ActivityRecorder
from backoffice.services.listing import MAX_PAGE_SIZE

router = APIRouter(prefix="/activity")


@router.get("", response_model=DataResponse[ActivityList])
async def list_activity(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    category: Optional[str] = None,
    severity: Optional[str] = None,
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    action: Optional[str] = None,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await ActivityRecorder(db).list_logs(
        page=page,
        limit=limit,
        category=category,
        severity=severity,
        user_id=user_id,
        action=action,
    )
    return DataResponse(
        data=ActivityList(
            activities=[ActivityRead.model_validate(entry) for entry in logs],
            pagination=Pagination.build(page, limit, total),
        )
    )
