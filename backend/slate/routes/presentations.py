from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from slate.core.security import CurrentUser, get_current_user
from slate.dependencies import get_presentation_service
from slate.domain.types import MatchedLevel, PresentationRecord
from slate.schemas.presentation import (
    PresentationCreate,
    PresentationDetail,
    PresentationInfo,
    PresentationListResponse,
    PresentationUpdate,
)
from slate.sharing import PresentationService

router = APIRouter(prefix="/presentations", tags=["Presentations"])


def _detail(record: PresentationRecord, access: MatchedLevel | None = None) -> PresentationDetail:
    return PresentationDetail.model_validate({**asdict(record), "access": access})


@router.post("", response_model=PresentationDetail, status_code=status.HTTP_201_CREATED)
async def create_presentation(
    body: PresentationCreate,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await service.create(current_user.id, body.title, body.description)
    return _detail(result.value, MatchedLevel.OWNER)


@router.get("", response_model=PresentationListResponse)
async def list_presentations(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, description="Match on title or description"),
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    page = await service.list_owned(current_user.id, search=search, skip=skip, limit=limit)
    return PresentationListResponse(
        presentations=[PresentationInfo.model_validate(p) for p in page.items],
        total=page.total,
        skip=page.skip,
        limit=page.limit,
    )


@router.get("/{presentation_id}", response_model=PresentationDetail)
async def get_presentation(
    presentation_id: str,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    presentation, decision = await service.get(presentation_id, current_user.id)
    return _detail(presentation, decision.matched_level)


@router.put("/{presentation_id}", response_model=PresentationDetail)
async def update_presentation(
    presentation_id: str,
    body: PresentationUpdate,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await service.update(presentation_id, current_user.id, body.model_dump(exclude_unset=True))
    return _detail(result.value)


@router.delete("/{presentation_id}")
async def delete_presentation(
    presentation_id: str,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    await service.delete(presentation_id, current_user.id)
    return {"message": "Presentation deleted successfully"}


@router.post(
    "/{presentation_id}/duplicate",
    response_model=PresentationDetail,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_presentation(
    presentation_id: str,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await service.duplicate(presentation_id, current_user.id)
    return _detail(result.value, MatchedLevel.OWNER)
