from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from slate.core.database import get_db
from slate.notifications import NotificationDispatcher
from slate.sharing import PresentationService, ShareGrantStore, ShareLinkManager
from slate.storage import SqlAlchemyStorageGateway, StorageGateway


def get_gateway(db: AsyncSession = Depends(get_db)) -> StorageGateway:
    return SqlAlchemyStorageGateway(db)


def get_grant_store(gateway: StorageGateway = Depends(get_gateway)) -> ShareGrantStore:
    return ShareGrantStore(gateway)


def get_link_manager(
    gateway: StorageGateway = Depends(get_gateway),
    grants: ShareGrantStore = Depends(get_grant_store),
) -> ShareLinkManager:
    return ShareLinkManager(gateway, grants)


def get_presentation_service(
    gateway: StorageGateway = Depends(get_gateway),
    grants: ShareGrantStore = Depends(get_grant_store),
) -> PresentationService:
    return PresentationService(gateway, grants)


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notifications
