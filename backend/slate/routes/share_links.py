from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from slate.core.security import CurrentUser, get_current_user
from slate.dependencies import get_dispatcher, get_link_manager
from slate.domain.types import LinkState
from slate.notifications import NotificationDispatcher
from slate.schemas.presentation import OwnerInfo
from slate.schemas.share_link import (
    SharedPresentationView,
    ShareLinkAccessRequest,
    ShareLinkAccessResponse,
    ShareLinkAnalyticsResponse,
    ShareLinkCreate,
    ShareLinkInfo,
    ShareLinkListResponse,
    ShareLinkUpdate,
    ShareLinkValidation,
)
from slate.sharing import ShareLinkManager, link_state
from slate.utils.urls import build_share_url

router = APIRouter(prefix="/share-links", tags=["Share Links"])


@router.post(
    "/presentation/{presentation_id}",
    response_model=ShareLinkInfo,
    status_code=status.HTTP_201_CREATED,
)
async def create_share_link(
    request: Request,
    presentation_id: str,
    body: ShareLinkCreate,
    links: ShareLinkManager = Depends(get_link_manager),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await links.issue(
        presentation_id,
        current_user.id,
        access_level=body.access_level,
        password=body.password,
        expires_at=body.expires_at,
        expires_in_days=body.expires_in_days,
        max_views=body.max_views,
    )
    dispatcher.dispatch(result.events)
    link = result.value
    return ShareLinkInfo.from_record(link, LinkState.ACTIVE, build_share_url(request, link.token))


@router.get("/presentation/{presentation_id}", response_model=ShareLinkListResponse)
async def list_share_links(
    request: Request,
    presentation_id: str,
    links: ShareLinkManager = Depends(get_link_manager),
    current_user: CurrentUser = Depends(get_current_user),
):
    rows = await links.list_for_presentation(presentation_id, current_user.id)
    return ShareLinkListResponse(
        links=[ShareLinkInfo.from_record(link, state, build_share_url(request, link.token)) for link, state in rows]
    )


@router.post("/access/{token}", response_model=ShareLinkAccessResponse)
async def access_share_link(
    token: str,
    body: ShareLinkAccessRequest | None = None,
    links: ShareLinkManager = Depends(get_link_manager),
):
    result = await links.access(token, body.password if body else None)
    presentation = result.presentation
    link = result.link
    return ShareLinkAccessResponse(
        presentation=SharedPresentationView(
            id=presentation.id,
            title=presentation.title,
            description=presentation.description,
            editor_data=presentation.editor_data,
            excalidraw_data=presentation.excalidraw_data,
            owner=OwnerInfo.model_validate(result.owner) if result.owner else None,
        ),
        access_level=result.access_level,
        views_remaining=link.max_views - link.view_count if link.max_views is not None else None,
    )


@router.get("/{token}/validate", response_model=ShareLinkValidation)
async def validate_share_link(token: str, links: ShareLinkManager = Depends(get_link_manager)):
    validation = await links.validate(token)
    link = validation.link
    return ShareLinkValidation(
        valid=validation.state is LinkState.ACTIVE,
        state=validation.state,
        requires_password=link.has_password,
        access_level=link.access_level,
        expires_at=link.expires_at,
    )


@router.put("/{link_id}", response_model=ShareLinkInfo)
async def update_share_link(
    request: Request,
    link_id: str,
    body: ShareLinkUpdate,
    links: ShareLinkManager = Depends(get_link_manager),
    current_user: CurrentUser = Depends(get_current_user),
):
    result = await links.update(link_id, current_user.id, body.model_dump(exclude_unset=True))
    link = result.value
    return ShareLinkInfo.from_record(link, link_state(link, links.clock()), build_share_url(request, link.token))


@router.delete("/{link_id}")
async def revoke_share_link(
    link_id: str,
    links: ShareLinkManager = Depends(get_link_manager),
    current_user: CurrentUser = Depends(get_current_user),
):
    await links.revoke(link_id, current_user.id)
    return {"message": "Share link revoked"}


@router.get("/{link_id}/analytics", response_model=ShareLinkAnalyticsResponse)
async def share_link_analytics(
    link_id: str,
    links: ShareLinkManager = Depends(get_link_manager),
    current_user: CurrentUser = Depends(get_current_user),
):
    return ShareLinkAnalyticsResponse.model_validate(await links.analytics(link_id, current_user.id))
