"""
SOP Activity Service - Staff bookmarks and on-shift completion records
"""

from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.exceptions import (
    ConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    ValidationError,
)
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.sop import SOPStatus
from sopmanager.models.sop_activity import SOPBookmark, SOPCompletion, SOPCompletionStatus
from sopmanager.models.user import User
from sopmanager.schemas.sop import BookmarkCreate, CompletionCreate, CompletionVerify
from sopmanager.services.audit_service import AuditContext, audit_service
from sopmanager.services.sop_service import sop_service
from sopmanager.utils.pagination import paginate

FINISHED_STATUSES = (SOPCompletionStatus.COMPLETED, SOPCompletionStatus.VERIFIED)


class SOPActivityService:

    # ==================== BOOKMARKS ====================

    async def list_bookmarks(self, db: AsyncSession, user: User) -> List[SOPBookmark]:
        result = await db.execute(
            select(SOPBookmark)
            .where(SOPBookmark.user_id == user.id, SOPBookmark.restaurant_id == user.restaurant_id)
            .order_by(SOPBookmark.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_bookmark(
        self,
        db: AsyncSession,
        user: User,
        data: BookmarkCreate,
        approved_only: bool = False,
        context: Optional[AuditContext] = None,
    ) -> SOPBookmark:
        await sop_service.get_document(db, user.restaurant_id, data.sop_id, approved_only=approved_only)

        existing = await db.execute(
            select(SOPBookmark.id).where(SOPBookmark.user_id == user.id, SOPBookmark.sop_id == data.sop_id)
        )
        if existing.scalar_one_or_none():
            raise ConflictError("SOP is already bookmarked", details={"sop_id": data.sop_id})

        bookmark = SOPBookmark(
            user_id=user.id,
            sop_id=data.sop_id,
            restaurant_id=user.restaurant_id,
            notes=data.notes,
        )
        db.add(bookmark)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "sop_bookmark", bookmark.id, user=user,
            new_values={"sop_id": data.sop_id, "notes": data.notes},
            context=context,
        )
        await db.commit()
        return bookmark

    async def delete_bookmark(
        self,
        db: AsyncSession,
        user: User,
        bookmark_id: str,
        context: Optional[AuditContext] = None,
    ) -> None:
        result = await db.execute(
            select(SOPBookmark).where(SOPBookmark.id == bookmark_id, SOPBookmark.user_id == user.id)
        )
        bookmark = result.scalar_one_or_none()
        if not bookmark:
            raise ResourceNotFoundError("SOPBookmark", bookmark_id)

        audit_service.record(
            db, AuditAction.DELETE, "sop_bookmark", bookmark.id, user=user,
            old_values={"sop_id": bookmark.sop_id, "notes": bookmark.notes},
            context=context,
        )
        await db.delete(bookmark)
        await db.commit()

    # ==================== COMPLETIONS ====================

    async def record_completion(
        self,
        db: AsyncSession,
        user: User,
        data: CompletionCreate,
        context: Optional[AuditContext] = None,
    ) -> SOPCompletion:
        document = await sop_service.get_document(db, user.restaurant_id, data.sop_id)
        if document.status != SOPStatus.APPROVED:
            raise ValidationError("Only approved SOPs can be completed", field="sop_id")
        if data.status == SOPCompletionStatus.VERIFIED:
            raise ValidationError("Completions are verified by a manager", field="status")

        now = datetime.utcnow()
        completion = SOPCompletion(
            sop_id=document.id,
            user_id=user.id,
            restaurant_id=user.restaurant_id,
            status=data.status,
            started_at=data.started_at or now - timedelta(minutes=data.time_spent_minutes),
            completed_at=now if data.status == SOPCompletionStatus.COMPLETED else None,
            time_spent_minutes=data.time_spent_minutes,
            notes=data.notes,
        )
        db.add(completion)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "sop_completion", completion.id, user=user,
            new_values={"sop_id": document.id, "status": data.status,
                        "time_spent_minutes": data.time_spent_minutes},
            context=context,
        )
        await db.commit()
        return completion

    def _completion_filters(
        self,
        restaurant_id: str,
        user_id: Optional[str] = None,
        sop_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list:
        conditions = [SOPCompletion.restaurant_id == restaurant_id]
        if user_id:
            conditions.append(SOPCompletion.user_id == user_id)
        if sop_id:
            conditions.append(SOPCompletion.sop_id == sop_id)
        if start_date:
            conditions.append(SOPCompletion.created_at >= start_date)
        if end_date:
            conditions.append(SOPCompletion.created_at <= end_date)
        return conditions

    async def list_completions(
        self,
        db: AsyncSession,
        restaurant_id: str,
        user_id: Optional[str] = None,
        sop_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
        include_stats: bool = False,
    ) -> dict:
        conditions = self._completion_filters(restaurant_id, user_id, sop_id, start_date, end_date)
        query = select(SOPCompletion).where(and_(*conditions)).order_by(SOPCompletion.created_at.desc())
        page_data = await paginate(db, query, page, page_size)
        page_data["stats"] = await self.completion_stats(db, conditions) if include_stats else None
        return page_data

    async def completion_stats(self, db: AsyncSession, conditions: list) -> dict:
        row = (await db.execute(
            select(
                func.count(SOPCompletion.id),
                func.avg(SOPCompletion.time_spent_minutes),
                func.avg(SOPCompletion.quality_rating),
            ).where(and_(*conditions))
        )).one()

        by_status = dict((await db.execute(
            select(SOPCompletion.status, func.count(SOPCompletion.id))
            .where(and_(*conditions))
            .group_by(SOPCompletion.status)
        )).all())

        verified = by_status.get(SOPCompletionStatus.VERIFIED, 0)
        return {
            "total": row[0] or 0,
            "completed": by_status.get(SOPCompletionStatus.COMPLETED, 0) + verified,
            "verified": verified,
            "average_time_minutes": round(float(row[1] or 0), 2),
            "average_quality_rating": round(float(row[2]), 2) if row[2] is not None else None,
        }

    async def verify_completion(
        self,
        db: AsyncSession,
        restaurant_id: str,
        completion_id: str,
        data: CompletionVerify,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPCompletion:
        result = await db.execute(
            select(SOPCompletion).where(
                SOPCompletion.id == completion_id,
                SOPCompletion.restaurant_id == restaurant_id,
            )
        )
        completion = result.scalar_one_or_none()
        if not completion:
            raise ResourceNotFoundError("SOPCompletion", completion_id)

        if completion.status != SOPCompletionStatus.COMPLETED:
            raise InvalidStatusTransitionError(
                completion.status.value,
                SOPCompletionStatus.VERIFIED.value,
                [],
            )

        completion.status = SOPCompletionStatus.VERIFIED
        completion.quality_rating = data.quality_rating
        completion.verified_by = actor.id
        completion.verified_at = datetime.utcnow()
        if data.notes:
            completion.notes = f"{completion.notes}\n{data.notes}" if completion.notes else data.notes

        audit_service.record(
            db, AuditAction.APPROVE, "sop_completion", completion.id, user=actor,
            old_values={"status": SOPCompletionStatus.COMPLETED},
            new_values={"status": SOPCompletionStatus.VERIFIED, "quality_rating": data.quality_rating},
            context=context,
        )
        await db.commit()
        return completion


sop_activity_service = SOPActivityService()
