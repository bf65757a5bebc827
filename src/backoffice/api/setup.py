"""First-run setup API — open, and inert once any account exists."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.engine import get_db
from backoffice.services.setup_service import SetupService

router = APIRouter(prefix="/setup")


class SetupAction(BaseModel):
    action: Literal["create-admin"]


@router.get("")
async def setup_status(db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": await SetupService(db).status()}


@router.post("")
async def run_setup(body: SetupAction, db: AsyncSession = Depends(get_db)):
    return await SetupService(db).create_default_admin()
