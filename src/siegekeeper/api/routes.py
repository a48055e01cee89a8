"""HTTP routes for the siegekeeper API."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field

from siegekeeper.api.runtime import ApiState
from siegekeeper.database import check_database_health
from siegekeeper.errors import (
    EntityNotFoundError,
    SnapshotError,
    SnapshotIntegrityError,
    SnapshotValidationError,
    TransientStorageError,
)
from siegekeeper.services import CampaignSummary
from siegekeeper.snapshot import dump_snapshot
from siegekeeper.snapshot.document import NAME_MAX_LENGTH

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


class CreateCampaignRequest(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class DuplicateCampaignRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)


class RestoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    source_id: int
    created_at: datetime
    updated_at: datetime
    counts: dict[str, int]


class ModifiedResponse(BaseModel):
    campaign_id: int
    pending: bool


def _http_error(exc: SnapshotError) -> HTTPException:
    """Map the engine's error family onto HTTP status codes."""

    if isinstance(exc, EntityNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, SnapshotValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": exc.message, "errors": exc.errors, **exc.details},
        )
    elif isinstance(exc, SnapshotIntegrityError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TransientStorageError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:  # pragma: no cover - every engine error has a subclass above
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail={"message": exc.message, **exc.details})


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    database_ok = await asyncio.to_thread(check_database_health, state.engine)
    return {
        "status": "ok" if database_ok else "degraded",
        "database": database_ok,
        "autosave_delay_seconds": state.autosave.delay_seconds,
        "pending_autosaves": len(state.autosave.pending()),
    }


@router.get("/campaigns", response_model=list[CampaignSummary])
async def list_campaigns(state: ApiStateDep) -> list[CampaignSummary]:
    try:
        return await asyncio.to_thread(state.campaigns.list_campaigns)
    except SnapshotError as exc:
        raise _http_error(exc) from exc


@router.post("/campaigns", response_model=CampaignSummary, status_code=status.HTTP_201_CREATED)
async def create_campaign(request: CreateCampaignRequest, state: ApiStateDep) -> CampaignSummary:
    try:
        return await asyncio.to_thread(state.campaigns.create_campaign, request.name)
    except SnapshotError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/campaigns/import", response_model=RestoreResponse, status_code=status.HTTP_201_CREATED
)
async def import_campaign(
    document: Annotated[dict[str, Any], Body()],
    state: ApiStateDep,
    name: Annotated[str | None, Query(min_length=1, max_length=NAME_MAX_LENGTH)] = None,
) -> RestoreResponse:
    try:
        restored = await asyncio.to_thread(state.campaigns.import_campaign, document, name=name)
    except SnapshotError as exc:
        raise _http_error(exc) from exc
    return RestoreResponse.model_validate(restored)


@router.get("/campaigns/{campaign_id}", response_model=CampaignSummary)
async def get_campaign(campaign_id: int, state: ApiStateDep) -> CampaignSummary:
    try:
        return await asyncio.to_thread(state.campaigns.get_campaign, campaign_id)
    except SnapshotError as exc:
        raise _http_error(exc) from exc


@router.delete("/campaigns/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_campaign(campaign_id: int, state: ApiStateDep) -> Response:
    try:
        await asyncio.to_thread(state.campaigns.delete_campaign, campaign_id)
    except SnapshotError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/campaigns/{campaign_id}/state")
async def get_campaign_state(campaign_id: int, state: ApiStateDep) -> dict[str, Any]:
    try:
        snapshot = await asyncio.to_thread(state.campaigns.export_campaign, campaign_id)
    except SnapshotError as exc:
        raise _http_error(exc) from exc
    return dump_snapshot(snapshot)


@router.post(
    "/campaigns/{campaign_id}/duplicate",
    response_model=RestoreResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_campaign(
    campaign_id: int,
    state: ApiStateDep,
    request: DuplicateCampaignRequest | None = None,
) -> RestoreResponse:
    name = request.name if request is not None else None
    try:
        restored = await asyncio.to_thread(state.campaigns.duplicate_campaign, campaign_id, name)
    except SnapshotError as exc:
        raise _http_error(exc) from exc
    return RestoreResponse.model_validate(restored)


@router.post("/campaigns/{campaign_id}/touch", response_model=CampaignSummary)
async def touch_campaign(campaign_id: int, state: ApiStateDep) -> CampaignSummary:
    try:
        return await asyncio.to_thread(state.campaigns.touch, campaign_id)
    except SnapshotError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/campaigns/{campaign_id}/modified",
    response_model=ModifiedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def mark_modified(campaign_id: int, state: ApiStateDep) -> ModifiedResponse:
    state.autosave.mark_modified(campaign_id)
    return ModifiedResponse(campaign_id=campaign_id, pending=state.autosave.is_dirty(campaign_id))
