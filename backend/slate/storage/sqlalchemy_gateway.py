from __future__ import annotations

import enum
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Mapping

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slate.domain.errors import NotFound, TokenCollision, TransientStorageError
from slate.domain.types import (
    AccessLevel,
    GrantRecord,
    PresentationRecord,
    ShareLinkRecord,
    UserRecord,
)
from slate.models import Presentation, ShareGrant, ShareLink, User
from slate.storage.gateway import (
    PRESENTATION_MUTABLE_FIELDS,
    SHARE_LINK_MUTABLE_FIELDS,
    check_fields,
)
from slate.utils.clock import utcnow

logger = logging.getLogger(__name__)


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _to_user(row: User) -> UserRecord:
    return UserRecord(id=row.id, name=row.name, email=row.email)


def _to_presentation(row: Presentation) -> PresentationRecord:
    return PresentationRecord(
        id=row.id,
        owner_id=row.owner_id,
        title=row.title,
        description=row.description,
        editor_data=row.editor_data,
        excalidraw_data=row.excalidraw_data,
        is_public=bool(row.is_public),
        default_share_access=AccessLevel(row.default_share_access),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_grant(row: ShareGrant) -> GrantRecord:
    return GrantRecord(
        id=row.id,
        presentation_id=row.presentation_id,
        grantee_user_id=row.grantee_user_id,
        access_level=AccessLevel(row.access_level),
        granted_by_user_id=row.granted_by_user_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_link(row: ShareLink) -> ShareLinkRecord:
    return ShareLinkRecord(
        id=row.id,
        presentation_id=row.presentation_id,
        token=row.token,
        access_level=AccessLevel(row.access_level),
        created_by_user_id=row.created_by_user_id,
        password_hash=row.password_hash,
        expires_at=row.expires_at,
        max_views=row.max_views,
        view_count=row.view_count,
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlAlchemyStorageGateway:
    """StorageGateway over an AsyncSession; every mutation is its own short transaction."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def _guard(self):
        try:
            yield
        except IntegrityError:
            await self.session.rollback()
            raise
        except DBAPIError as exc:
            await self.session.rollback()
            logger.warning("Storage operation failed: %s", exc.__class__.__name__)
            raise TransientStorageError() from exc

    # ── users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: str) -> UserRecord | None:
        async with self._guard():
            row = await self.session.get(User, user_id)
        return _to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        async with self._guard():
            res = await self.session.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
            row = res.scalars().first()
        return _to_user(row) if row else None

    async def get_users(self, user_ids: list[str]) -> dict[str, UserRecord]:
        if not user_ids:
            return {}
        async with self._guard():
            res = await self.session.execute(select(User).where(User.id.in_(set(user_ids))))
            rows = res.scalars().all()
        return {row.id: _to_user(row) for row in rows}

    # ── presentations ────────────────────────────────────────────────

    async def get_presentation(self, presentation_id: str) -> PresentationRecord | None:
        async with self._guard():
            row = await self.session.get(Presentation, presentation_id, populate_existing=True)
        return _to_presentation(row) if row else None

    async def create_presentation(self, presentation: PresentationRecord) -> PresentationRecord:
        now = utcnow()
        row = Presentation(
            id=presentation.id or str(uuid.uuid4()),
            owner_id=presentation.owner_id,
            title=presentation.title,
            description=presentation.description,
            editor_data=presentation.editor_data,
            excalidraw_data=presentation.excalidraw_data,
            is_public=presentation.is_public,
            default_share_access=_db_value(presentation.default_share_access),
            created_at=now,
            updated_at=now,
        )
        async with self._guard():
            self.session.add(row)
            await self.session.commit()
        return _to_presentation(row)

    async def update_presentation(
        self, presentation_id: str, fields: Mapping[str, Any],
    ) -> PresentationRecord | None:
        check_fields(fields, PRESENTATION_MUTABLE_FIELDS)
        async with self._guard():
            row = await self.session.get(Presentation, presentation_id, populate_existing=True)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, _db_value(value))
            row.updated_at = utcnow()
            await self.session.commit()
        return _to_presentation(row)

    async def delete_presentation(self, presentation_id: str) -> bool:
        async with self._guard():
            await self.session.execute(delete(ShareLink).where(ShareLink.presentation_id == presentation_id))
            await self.session.execute(delete(ShareGrant).where(ShareGrant.presentation_id == presentation_id))
            res = await self.session.execute(delete(Presentation).where(Presentation.id == presentation_id))
            await self.session.commit()
        return res.rowcount == 1

    async def list_presentations(
        self,
        *,
        owner_id: str | None = None,
        public_only: bool = False,
        search: str | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[PresentationRecord], int]:
        conditions = []
        if owner_id is not None:
            conditions.append(Presentation.owner_id == owner_id)
        if public_only:
            conditions.append(Presentation.is_public.is_(True))
        if search and search.strip():
            needle = f"%{search.strip()}%"
            conditions.append(or_(Presentation.title.ilike(needle), Presentation.description.ilike(needle)))

        count_stmt = select(func.count()).select_from(Presentation).where(*conditions)
        query = (
            select(Presentation)
            .where(*conditions)
            .order_by(Presentation.updated_at.desc())
            .offset(skip)
            .limit(limit)
        )
        async with self._guard():
            total = (await self.session.execute(count_stmt)).scalar_one()
            rows = (await self.session.execute(query)).scalars().all()
        return [_to_presentation(r) for r in rows], total

    # ── grants ───────────────────────────────────────────────────────

    async def _grant_row(self, presentation_id: str, user_id: str) -> ShareGrant | None:
        res = await self.session.execute(
            select(ShareGrant)
            .where(ShareGrant.presentation_id == presentation_id, ShareGrant.grantee_user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return res.scalars().first()

    async def find_grant(self, presentation_id: str, user_id: str) -> GrantRecord | None:
        async with self._guard():
            row = await self._grant_row(presentation_id, user_id)
        return _to_grant(row) if row else None

    async def upsert_grant(
        self,
        presentation_id: str,
        grantee_user_id: str,
        access_level: AccessLevel,
        granted_by_user_id: str,
    ) -> tuple[GrantRecord, bool]:
        async with self._guard():
            row = await self._grant_row(presentation_id, grantee_user_id)
            if row is not None:
                row.access_level = _db_value(access_level)
                row.updated_at = utcnow()
                await self.session.commit()
                return _to_grant(row), False

        now = utcnow()
        row = ShareGrant(
            id=str(uuid.uuid4()),
            presentation_id=presentation_id,
            grantee_user_id=grantee_user_id,
            access_level=_db_value(access_level),
            granted_by_user_id=granted_by_user_id,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._guard():
                self.session.add(row)
                await self.session.commit()
            return _to_grant(row), True
        except IntegrityError:
            # lost an insert race for the same pair; update the winner's row
            pass

        async with self._guard():
            existing = await self._grant_row(presentation_id, grantee_user_id)
            if existing is None:
                raise NotFound("Presentation or user no longer exists")
            existing.access_level = _db_value(access_level)
            existing.updated_at = utcnow()
            await self.session.commit()
        return _to_grant(existing), False

    async def delete_grant(self, presentation_id: str, grantee_user_id: str) -> bool:
        async with self._guard():
            res = await self.session.execute(
                delete(ShareGrant).where(
                    ShareGrant.presentation_id == presentation_id,
                    ShareGrant.grantee_user_id == grantee_user_id,
                )
            )
            await self.session.commit()
        return res.rowcount == 1

    async def list_grants(self, presentation_id: str) -> list[GrantRecord]:
        async with self._guard():
            res = await self.session.execute(
                select(ShareGrant)
                .where(ShareGrant.presentation_id == presentation_id)
                .order_by(ShareGrant.created_at.desc())
            )
            rows = res.scalars().all()
        return [_to_grant(r) for r in rows]

    async def list_shared_with(
        self, user_id: str, *, skip: int = 0, limit: int = 10,
    ) -> tuple[list[tuple[GrantRecord, PresentationRecord]], int]:
        count_stmt = select(func.count()).select_from(ShareGrant).where(ShareGrant.grantee_user_id == user_id)
        query = (
            select(ShareGrant, Presentation)
            .join(Presentation, Presentation.id == ShareGrant.presentation_id)
            .where(ShareGrant.grantee_user_id == user_id)
            .order_by(ShareGrant.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        async with self._guard():
            total = (await self.session.execute(count_stmt)).scalar_one()
            rows = (await self.session.execute(query)).all()
        return [(_to_grant(g), _to_presentation(p)) for g, p in rows], total

    # ── share links ──────────────────────────────────────────────────

    async def create_share_link(self, link: ShareLinkRecord) -> ShareLinkRecord:
        now = utcnow()
        row = ShareLink(
            id=link.id or str(uuid.uuid4()),
            presentation_id=link.presentation_id,
            token=link.token,
            access_level=_db_value(link.access_level),
            password_hash=link.password_hash,
            expires_at=link.expires_at,
            max_views=link.max_views,
            view_count=0,
            created_by_user_id=link.created_by_user_id,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._guard():
                self.session.add(row)
                await self.session.commit()
        except IntegrityError:
            async with self._guard():
                clash = await self.session.execute(select(ShareLink.id).where(ShareLink.token == link.token))
                token_taken = clash.first() is not None
            if token_taken:
                raise TokenCollision()
            raise NotFound("Presentation not found")
        return _to_link(row)

    async def get_share_link_by_token(self, token: str) -> ShareLinkRecord | None:
        async with self._guard():
            res = await self.session.execute(
                select(ShareLink).where(ShareLink.token == token).execution_options(populate_existing=True)
            )
            row = res.scalars().first()
        return _to_link(row) if row else None

    async def get_share_link_by_id(self, link_id: str) -> ShareLinkRecord | None:
        async with self._guard():
            row = await self.session.get(ShareLink, link_id, populate_existing=True)
        return _to_link(row) if row else None

    async def update_share_link(
        self, link_id: str, fields: Mapping[str, Any],
    ) -> ShareLinkRecord | None:
        check_fields(fields, SHARE_LINK_MUTABLE_FIELDS)
        async with self._guard():
            row = await self.session.get(ShareLink, link_id, populate_existing=True)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, _db_value(value))
            row.updated_at = utcnow()
            await self.session.commit()
        return _to_link(row)

    async def delete_share_link(self, link_id: str) -> bool:
        async with self._guard():
            res = await self.session.execute(delete(ShareLink).where(ShareLink.id == link_id))
            await self.session.commit()
        return res.rowcount == 1

    async def list_share_links(self, presentation_id: str) -> list[ShareLinkRecord]:
        async with self._guard():
            res = await self.session.execute(
                select(ShareLink)
                .where(ShareLink.presentation_id == presentation_id)
                .order_by(ShareLink.created_at.desc())
            )
            rows = res.scalars().all()
        return [_to_link(r) for r in rows]

    async def conditional_increment_view_count(self, link_id: str) -> bool:
        stmt = (
            update(ShareLink)
            .where(
                ShareLink.id == link_id,
                ShareLink.is_active.is_(True),
                or_(ShareLink.max_views.is_(None), ShareLink.view_count < ShareLink.max_views),
            )
            .values(view_count=ShareLink.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        async with self._guard():
            res = await self.session.execute(stmt)
            await self.session.commit()
        return res.rowcount == 1
