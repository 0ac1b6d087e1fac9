"""
Valentine Backend: Landing Page Route
=======================================

What:  GET / returns valentine.html from the static root.
How:   Plain FileResponse; every other asset is served by the StaticFiles
       mounts registered in main.create_app().
"""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from valentine.config import settings
from valentine.exceptions import NotFoundError

router = APIRouter(tags=["Pages"])

LANDING_PAGE = "valentine.html"


@router.get("/", include_in_schema=False)
async def landing_page() -> FileResponse:
    path = Path(settings.static_root) / LANDING_PAGE
    if not path.is_file():
        raise NotFoundError(message="Landing page not found.", resource_id=LANDING_PAGE)
    return FileResponse(path=str(path), media_type="text/html")
