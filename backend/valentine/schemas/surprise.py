"""
Valentine Backend: Pydantic Request/Response Schemas
======================================================

What:  Pydantic models defining the API contract with the frontend pages.
How:   Field names are snake_case in Python and camelCase on the wire
       (alias_generator=to_camel). FastAPI serializes response models by
       alias, so `secret_key` leaves the API as `secretKey`.
Who:   Returned by the service layer and route handlers; SurpriseRecord is
       also the unit the storage layer saves and loads.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

# Every stored photo is re-encoded to JPEG
PHOTO_CONTENT_TYPE = "image/jpeg"

# Number of photos a surprise must carry
REQUIRED_PHOTO_COUNT = 5

CAMEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "from_attributes": True,
}


# ══════════════════════════════════════════════════════════════════════════
# Stored Document
# ══════════════════════════════════════════════════════════════════════════


class Photo(BaseModel):
    """One normalized photo embedded in a surprise."""

    content_type: str = Field(default=PHOTO_CONTENT_TYPE, description="Always image/jpeg")
    data: str = Field(description="Base64-encoded JPEG bytes")

    model_config = CAMEL_CONFIG


class SurpriseRecord(BaseModel):
    """
    What:  The full surprise document as stored and as returned by
           GET /api/get-surprise/{id}.
    Invariants:
        - photos has exactly REQUIRED_PHOTO_COUNT entries
        - the record is never modified after creation
    """

    id: str = Field(description="16 hex character identifier")
    secret_key: str = Field(description="8 uppercase hex characters")
    partner_name: str
    sender_name: str
    photos: List[Photo] = Field(
        min_length=REQUIRED_PHOTO_COUNT,
        max_length=REQUIRED_PHOTO_COUNT,
    )
    created_at: datetime

    model_config = CAMEL_CONFIG


class CreatedSurprise(BaseModel):
    """Result of SurpriseService.create_surprise(); the link is what users share."""

    id: str
    secret_key: str
    link: str


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CreateSurpriseResponse(BaseModel):
    """Returned by POST /api/create-surprise."""

    success: bool = True
    link: str = Field(description="Shareable <baseUrl>/valentine.html?id=<id> link")
    message: str = "Surprise created!"


class GetSurpriseResponse(BaseModel):
    """Returned by GET /api/get-surprise/{id}."""

    success: bool = True
    data: SurpriseRecord


class CheckSurpriseResponse(BaseModel):
    """
    Returned by GET /api/check-surprise/{id}.

    sender_name is only present when the surprise exists; the route drops
    None fields so a miss serializes as {"exists": false}.
    """

    exists: bool
    sender_name: Optional[str] = None

    model_config = CAMEL_CONFIG


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint: {"error": "<message>"}."""

    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    """Returned by GET /health for container and load balancer probes."""

    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float

    model_config = CAMEL_CONFIG
