"""
Valentine Backend: Surprise Route Handlers
============================================

What:  POST /api/create-surprise, GET /api/get-surprise/{id},
       GET /api/check-surprise/{id}.
How:   Extract parameters, call SurpriseService, return the response model.
       Domain exceptions propagate to the global handlers in main.py,
       which map them to status codes and {"error": ...} bodies.
Who:   Called by the static pages (create form and valentine.html).
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from valentine.config import settings
from valentine.schemas.surprise import (
    CheckSurpriseResponse,
    CreateSurpriseResponse,
    ErrorResponse,
    GetSurpriseResponse,
)
from valentine.services.surprise_service import (
    PhotoUpload,
    SurpriseService,
    get_surprise_service,
    resolve_base_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Surprises"])


async def read_uploads(files: List[UploadFile], max_size: int) -> List[PhotoUpload]:
    """
    Read every file part into memory and close it.

    At most max_size + 1 bytes are kept per part: enough for
    SurpriseService.validate_photos() to see that a part is over the limit
    without buffering the rest of it.
    """
    uploads = []
    for index, file in enumerate(files):
        try:
            content = await file.read(max_size + 1)
        finally:
            await file.close()
        uploads.append(
            PhotoUpload(
                filename=file.filename or f"photo-{index + 1}",
                content_type=file.content_type,
                content=content,
            )
        )
    return uploads


@router.post(
    "/create-surprise",
    response_model=CreateSurpriseResponse,
    responses={
        400: {"description": "Wrong number of photos or invalid form", "model": ErrorResponse},
        500: {"description": "Image or storage failure", "model": ErrorResponse},
    },
    summary="Create a surprise page from five photos",
)
async def create_surprise(
    request: Request,
    # Names are stored as sent; absent or blank fields become ""
    partner_name: str = Form(default="", alias="partnerName"),
    sender_name: str = Form(default="", alias="senderName"),
    photos: Optional[List[UploadFile]] = File(
        default=None,
        description="Exactly five image files",
    ),
    service: SurpriseService = Depends(get_surprise_service),
) -> CreateSurpriseResponse:
    """
    Upload five photos and get back a shareable link.

    The link origin comes from BASE_URL when configured, otherwise from the
    request's scheme (honouring X-Forwarded-Proto) and Host header.
    """
    uploads = await read_uploads(photos or [], service.max_file_size)
    logger.info(
        "Received create request: %d photos, %d bytes total",
        len(uploads),
        sum(len(u.content) for u in uploads),
    )

    base_url = resolve_base_url(
        configured=settings.base_url,
        scheme=request.url.scheme,
        forwarded_proto=request.headers.get("x-forwarded-proto"),
        host=request.headers.get("host"),
    )

    created = await service.create_surprise(
        partner_name=partner_name,
        sender_name=sender_name,
        photos=uploads,
        base_url=base_url,
    )
    return CreateSurpriseResponse(link=created.link)


@router.get(
    "/get-surprise/{surprise_id}",
    response_model=GetSurpriseResponse,
    responses={
        404: {"description": "Unknown id", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Fetch a surprise with its photos",
)
async def get_surprise(
    surprise_id: str,
    service: SurpriseService = Depends(get_surprise_service),
) -> GetSurpriseResponse:
    record = await service.get_surprise(surprise_id)
    return GetSurpriseResponse(data=record)


@router.get(
    "/check-surprise/{surprise_id}",
    response_model=CheckSurpriseResponse,
    response_model_exclude_none=True,
    responses={500: {"description": "Storage failure", "model": ErrorResponse}},
    summary="Check whether a surprise exists",
)
async def check_surprise(
    surprise_id: str,
    service: SurpriseService = Depends(get_surprise_service),
) -> CheckSurpriseResponse:
    """{"exists": true, "senderName": ...} or {"exists": false}."""
    return await service.check_surprise(surprise_id)
