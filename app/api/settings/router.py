import json

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.core.timeutil import utcnow
from app.db.session import get_db

from . import service

router = APIRouter(
    prefix="/api/settings",
    tags=["settings"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("/backup")
async def download_backup(db: AsyncSession = Depends(get_db)) -> Response:
    """JSON snapshot of the whole database as a file download."""
    payload = await service.build_backup(db)
    filename = f"alumni-backup-{utcnow().strftime('%Y-%m-%d')}.json"
    return Response(
        content=json.dumps(payload, indent=2),
        media_type="application/json; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
