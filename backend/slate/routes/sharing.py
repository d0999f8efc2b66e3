from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from slate.core.security import CurrentUser, get_current_user
from slate.dependencies import get_dispatcher, get_grant_store, get_presentation_service
from slate.domain.types import GrantRecord, UserRecord
from slate.notifications import NotificationDispatcher
from slate.schemas.presentation import (
    OwnerInfo,
    PresentationInfo,
    PublicPresentation,
    PublicPresentationListResponse,
)
from slate.schemas.sharing import (
    GranteeInfo,
    GrantInfo,
    GrantListResponse,
    RevokeRequest,
    SharedPresentationInfo,
    SharedWithMeResponse,
    ShareRequest,
    ShareResponse,
    VisibilityRequest,
)
from slate.sharing import PresentationService, ShareGrantStore

router = APIRouter(prefix="/sharing", tags=["Sharing"])


def _grant_info(grant: GrantRecord, grantee: UserRecord | None) -> GrantInfo:
    return GrantInfo(
        id=grant.id,
        presentation_id=grant.presentation_id,
        access_level=grant.access_level,
        granted_by_user_id=grant.granted_by_user_id,
        created_at=grant.created_at,
        updated_at=grant.updated_at,
        user=GranteeInfo.model_validate(grantee) if grantee else None,
    )


@router.get("/public", response_model=PublicPresentationListResponse)
async def list_public_presentations(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None),
    service: PresentationService = Depends(get_presentation_service),
):
    page = await service.list_public(search=search, skip=skip, limit=limit)
    items = [
        PublicPresentation(
            **PresentationInfo.model_validate(p).model_dump(),
            owner=OwnerInfo.model_validate(owner) if owner else None,
        )
        for p, owner in page.items
    ]
    return PublicPresentationListResponse(presentations=items, total=page.total, skip=page.skip, limit=page.limit)


@router.get("/shared-with-me", response_model=SharedWithMeResponse)
async def list_shared_with_me(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    grants: ShareGrantStore = Depends(get_grant_store),
    current_user: CurrentUser = Depends(get_current_user),
):
    page = await grants.shared_with(current_user.id, skip=skip, limit=limit)
    items = [
        SharedPresentationInfo(
            presentation=PresentationInfo.model_validate(item.presentation),
            owner=OwnerInfo.model_validate(item.owner) if item.owner else None,
            access_level=item.grant.access_level,
            shared_at=item.grant.created_at,
        )
        for item in page.items
    ]
    return SharedWithMeResponse(presentations=items, total=page.total, skip=page.skip, limit=page.limit)


@router.post("/{presentation_id}/share", response_model=ShareResponse)
async def share_presentation(
    presentation_id: str,
    body: ShareRequest,
    response: Response,
    grants: ShareGrantStore = Depends(get_grant_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await grants.share(presentation_id, current_user.id, body.email, body.access_level)
    dispatcher.dispatch(result.events)
    grantee = await grants.gateway.get_user(result.value.grantee_user_id)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return ShareResponse(
        message="Presentation shared successfully" if result.created else "Share access updated",
        created=result.created,
        share=_grant_info(result.value, grantee),
    )


@router.delete("/{presentation_id}/revoke")
async def revoke_share(
    presentation_id: str,
    body: RevokeRequest,
    grants: ShareGrantStore = Depends(get_grant_store),
    current_user: CurrentUser = Depends(get_current_user),
):
    await grants.revoke(presentation_id, current_user.id, body.user_id)
    return {"message": "Share access revoked"}


@router.get("/{presentation_id}/shares", response_model=GrantListResponse)
async def list_shares(
    presentation_id: str,
    grants: ShareGrantStore = Depends(get_grant_store),
    current_user: CurrentUser = Depends(get_current_user),
):
    rows = await grants.list(presentation_id, current_user.id)
    return GrantListResponse(shares=[_grant_info(row.grant, row.grantee) for row in rows])


@router.patch("/{presentation_id}/visibility", response_model=PresentationInfo)
async def set_visibility(
    presentation_id: str,
    body: VisibilityRequest,
    service: PresentationService = Depends(get_presentation_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await service.set_visibility(presentation_id, current_user.id, body.is_public)
    return PresentationInfo.model_validate(result.value)
