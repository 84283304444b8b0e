"""
SOP Service - Categories, bilingual documents, versions, approval workflow
and search

Every document query is filtered by the caller's restaurant. A document of
another restaurant is reported as not found.
"""

from datetime import datetime
from typing import Optional, List, Tuple, Dict

from sqlalchemy import select, func, or_, String, cast
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    StatusUnchangedError,
)
from sopmanager.core.logging_config import logger
from sopmanager.core.permissions import Permission, has_permission
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.sop import (
    SOPCategory,
    SOPDocument,
    SOPVersion,
    SOPApproval,
    SOPStatus,
    SOPPriority,
    ApprovalAction,
)
from sopmanager.models.user import User
from sopmanager.schemas.sop import (
    CategoryCreate,
    CategoryUpdate,
    DocumentCreate,
    DocumentUpdate,
)
from sopmanager.services.audit_service import AuditContext, audit_service, diff_values
from sopmanager.utils.pagination import paginate
from sopmanager.utils.search import sanitize_search_query, search_terms

SOP_STATUS_TRANSITIONS: Dict[SOPStatus, Tuple[SOPStatus, ...]] = {
    SOPStatus.DRAFT: (SOPStatus.REVIEW,),
    SOPStatus.REVIEW: (SOPStatus.APPROVED, SOPStatus.DRAFT),
    SOPStatus.APPROVED: (SOPStatus.REVIEW, SOPStatus.ARCHIVED),
    SOPStatus.ARCHIVED: (SOPStatus.DRAFT,),
}

CATEGORY_FIELDS = (
    "name", "name_th", "description", "description_th", "icon", "color", "sort_order", "is_active",
)

SNIPPET_LENGTH = 160


def allowed_sop_transitions(status: SOPStatus) -> List[SOPStatus]:
    return list(SOP_STATUS_TRANSITIONS.get(status, ()))


def build_snippet(text: str, terms: List[str], length: int = SNIPPET_LENGTH) -> str:
    """Window of `text` around the first matching term"""
    if not text:
        return ""
    lowered = text.lower()
    positions = [lowered.find(t) for t in terms if lowered.find(t) >= 0]
    start = max(0, min(positions) - length // 4) if positions else 0
    snippet = text[start:start + length].strip()
    if start > 0:
        snippet = "…" + snippet
    if start + length < len(text):
        snippet = snippet + "…"
    return snippet


def score_document(document: SOPDocument, terms: List[str], locale: str) -> int:
    """Title matches outrank tag matches, which outrank body matches"""
    if locale == "th":
        title, content, tags = document.title_th, document.content_th, document.tags_th or []
        other_title, other_content = document.title, document.content
    else:
        title, content, tags = document.title, document.content, document.tags or []
        other_title, other_content = document.title_th, document.content_th

    tag_text = " ".join(tags).lower()
    score = 0
    for term in terms:
        if term in (title or "").lower():
            score += 10
        elif term in (other_title or "").lower():
            score += 6
        if term in tag_text:
            score += 4
        if term in (content or "").lower():
            score += 2
        elif term in (other_content or "").lower():
            score += 1
    return score


class SOPService:
    """Service for SOP categories and documents"""

    # ==================== CATEGORIES ====================

    async def list_categories(
        self,
        db: AsyncSession,
        restaurant_id: str,
        include_inactive: bool = False,
        with_counts: bool = True,
    ) -> List[Tuple[SOPCategory, Optional[int]]]:
        query = select(SOPCategory)
        if not include_inactive:
            query = query.where(SOPCategory.is_active == True)  # noqa: E712
        result = await db.execute(query.order_by(SOPCategory.sort_order, SOPCategory.code))
        categories = result.scalars().all()

        counts: Dict[str, int] = {}
        if with_counts:
            count_result = await db.execute(
                select(SOPDocument.category_id, func.count(SOPDocument.id))
                .where(
                    SOPDocument.restaurant_id == restaurant_id,
                    SOPDocument.is_active == True,  # noqa: E712
                )
                .group_by(SOPDocument.category_id)
            )
            counts = {row[0]: row[1] for row in count_result.all()}

        return [(c, counts.get(c.id, 0) if with_counts else None) for c in categories]

    async def get_category(self, db: AsyncSession, category_id: str) -> SOPCategory:
        result = await db.execute(select(SOPCategory).where(SOPCategory.id == category_id))
        category = result.scalar_one_or_none()
        if not category:
            raise ResourceNotFoundError("SOPCategory", category_id)
        return category

    async def create_category(
        self,
        db: AsyncSession,
        data: CategoryCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPCategory:
        existing = await db.execute(select(SOPCategory.id).where(SOPCategory.code == data.code))
        if existing.scalar_one_or_none():
            raise ConflictError(f"Category code '{data.code}' already exists", details={"field": "code"})

        category = SOPCategory(**data.model_dump(), is_active=True)
        db.add(category)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "sop_category", category.id, user=actor,
            new_values=data.model_dump(), context=context,
        )
        await db.commit()
        return category

    async def update_category(
        self,
        db: AsyncSession,
        category_id: str,
        data: CategoryUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPCategory:
        category = await self.get_category(db, category_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("is_active") is False and category.is_active:
            await self._ensure_category_unused(db, category)

        before = {f: getattr(category, f) for f in CATEGORY_FIELDS}
        for field, value in changes.items():
            setattr(category, field, value)

        old_values, new_values = diff_values(before, {f: getattr(category, f) for f in CATEGORY_FIELDS})
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "sop_category", category.id, user=actor,
                old_values=old_values, new_values=new_values, context=context,
            )
        await db.commit()
        return category

    async def deactivate_category(
        self,
        db: AsyncSession,
        category_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPCategory:
        category = await self.get_category(db, category_id)
        await self._ensure_category_unused(db, category)

        category.is_active = False
        audit_service.record(
            db, AuditAction.DELETE, "sop_category", category.id, user=actor,
            old_values={"is_active": True}, new_values={"is_active": False}, context=context,
        )
        await db.commit()
        return category

    async def _ensure_category_unused(self, db: AsyncSession, category: SOPCategory) -> None:
        # Categories are shared, so documents of every restaurant count
        in_use = await db.scalar(
            select(func.count(SOPDocument.id)).where(
                SOPDocument.category_id == category.id,
                SOPDocument.is_active == True,  # noqa: E712
            )
        )
        if in_use:
            raise ConflictError(
                f"Category '{category.code}' is used by {in_use} active documents",
                details={"document_count": in_use},
            )

    # ==================== DOCUMENTS ====================

    def _documents(self, restaurant_id: str, approved_only: bool = False):
        query = select(SOPDocument).where(
            SOPDocument.restaurant_id == restaurant_id,
            SOPDocument.is_active == True,  # noqa: E712
        )
        if approved_only:
            query = query.where(SOPDocument.status == SOPStatus.APPROVED)
        return query

    async def list_documents(
        self,
        db: AsyncSession,
        restaurant_id: str,
        approved_only: bool = False,
        category_id: Optional[str] = None,
        status: Optional[SOPStatus] = None,
        priority: Optional[SOPPriority] = None,
        search: Optional[str] = None,
        tag: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict:
        query = self._documents(restaurant_id, approved_only)
        if category_id:
            query = query.where(SOPDocument.category_id == category_id)
        if status:
            query = query.where(SOPDocument.status == status)
        if priority:
            query = query.where(SOPDocument.priority == priority)
        if search:
            cleaned = sanitize_search_query(search)
            if cleaned:
                term = f"%{cleaned}%"
                query = query.where(or_(
                    SOPDocument.title.ilike(term),
                    SOPDocument.title_th.ilike(term),
                    SOPDocument.content.ilike(term),
                    SOPDocument.content_th.ilike(term),
                ))
        if tag:
            cleaned_tag = sanitize_search_query(tag)
            if cleaned_tag:
                # JSON list rendered as text, e.g. ["safety", "kitchen"]
                pattern = f'%"{cleaned_tag}"%'
                query = query.where(or_(
                    cast(SOPDocument.tags, String).ilike(pattern),
                    cast(SOPDocument.tags_th, String).ilike(pattern),
                ))

        query = query.order_by(SOPDocument.updated_at.desc(), SOPDocument.title)
        return await paginate(db, query, page, page_size)

    async def get_document(
        self,
        db: AsyncSession,
        restaurant_id: str,
        document_id: str,
        approved_only: bool = False,
    ) -> SOPDocument:
        result = await db.execute(
            self._documents(restaurant_id, approved_only).where(SOPDocument.id == document_id)
        )
        document = result.scalar_one_or_none()
        if not document:
            raise ResourceNotFoundError("SOPDocument", document_id)
        return document

    async def _active_category(self, db: AsyncSession, category_id: str) -> SOPCategory:
        category = await self.get_category(db, category_id)
        if not category.is_active:
            raise ResourceNotFoundError("SOPCategory", category_id)
        return category

    async def create_document(
        self,
        db: AsyncSession,
        restaurant_id: str,
        data: DocumentCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPDocument:
        await self._active_category(db, data.category_id)

        values = data.model_dump()
        document = SOPDocument(
            **values,
            restaurant_id=restaurant_id,
            version=1,
            status=SOPStatus.DRAFT,
            created_by=actor.id,
            updated_by=actor.id,
            is_active=True,
        )
        db.add(document)
        await db.flush()

        audit_service.record(
            db, AuditAction.CREATE, "sop_document", document.id, user=actor,
            new_values={"title": document.title, "category_id": document.category_id,
                        "priority": document.priority, "version": 1},
            context=context,
        )
        await db.commit()

        logger.info(f"Created SOP document {document.id} '{document.title}'")
        return document

    async def update_document(
        self,
        db: AsyncSession,
        restaurant_id: str,
        document_id: str,
        data: DocumentUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> SOPDocument:
        """
        Apply edits. A change to any versioned field snapshots the current
        content, bumps the version and sends an approved document back to draft.
        """
        document = await self.get_document(db, restaurant_id, document_id)
        changes = data.model_dump(exclude_unset=True)
        change_summary = changes.pop("change_summary", None)

        if changes.get("category_id") and changes["category_id"] != document.category_id:
            await self._active_category(db, changes["category_id"])

        before = {field: getattr(document, field) for field in changes}
        content_changed = any(
            field in SOPDocument.VERSIONED_FIELDS and changes[field] != before[field]
            for field in changes
        )

        metadata = {}
        if content_changed:
            db.add(SOPVersion(
                document_id=document.id,
                restaurant_id=document.restaurant_id,
                version=document.version,
                content_snapshot=document.snapshot(),
                change_summary=change_summary,
                created_by=actor.id,
            ))
            metadata["version_before"] = document.version
            document.version += 1
            metadata["version_after"] = document.version
            if document.status == SOPStatus.APPROVED:
                document.status = SOPStatus.DRAFT
                document.approved_by = None
                document.approved_at = None
                metadata["status_reset"] = SOPStatus.DRAFT.value

        for field, value in changes.items():
            setattr(document, field, value)
        document.updated_by = actor.id

        old_values, new_values = diff_values(before, changes)
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "sop_document", document.id, user=actor,
                old_values=old_values, new_values=new_values,
                metadata=metadata or None, context=context,
            )
        await db.commit()
        return document

    async def delete_document(
        self,
        db: AsyncSession,
        restaurant_id: str,
        document_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> None:
        document = await self.get_document(db, restaurant_id, document_id)
        old_status = document.status

        document.is_active = False
        document.status = SOPStatus.ARCHIVED
        document.updated_by = actor.id

        audit_service.record(
            db, AuditAction.DELETE, "sop_document", document.id, user=actor,
            old_values={"status": old_status, "is_active": True},
            new_values={"status": SOPStatus.ARCHIVED, "is_active": False},
            context=context,
        )
        await db.commit()

    async def change_status(
        self,
        db: AsyncSession,
        restaurant_id: str,
        document_id: str,
        new_status: SOPStatus,
        actor: User,
        notes: Optional[str] = None,
        context: Optional[AuditContext] = None,
    ) -> SOPDocument:
        document = await self.get_document(db, restaurant_id, document_id)
        current = document.status

        if new_status == current:
            raise StatusUnchangedError(current.value)

        allowed = allowed_sop_transitions(current)
        if new_status not in allowed:
            raise InvalidStatusTransitionError(current.value, new_status.value, [s.value for s in allowed])

        # Leaving review is a reviewer decision
        if current == SOPStatus.REVIEW and not has_permission(actor.role, Permission.SOP_APPROVE):
            raise AuthorizationError(
                "Reviewing SOP documents requires approval rights",
                permission=Permission.SOP_APPROVE.value,
            )

        now = datetime.utcnow()
        action = AuditAction.UPDATE
        if new_status == SOPStatus.APPROVED:
            document.approved_by = actor.id
            document.approved_at = now
            db.add(SOPApproval(
                document_id=document.id, restaurant_id=restaurant_id, version=document.version,
                action=ApprovalAction.APPROVE, notes=notes, reviewer_id=actor.id,
            ))
            action = AuditAction.APPROVE
        elif current == SOPStatus.REVIEW and new_status == SOPStatus.DRAFT:
            db.add(SOPApproval(
                document_id=document.id, restaurant_id=restaurant_id, version=document.version,
                action=ApprovalAction.REJECT, notes=notes, reviewer_id=actor.id,
            ))
            action = AuditAction.REJECT

        document.status = new_status
        document.updated_by = actor.id

        audit_service.record(
            db, action, "sop_document", document.id, user=actor,
            old_values={"status": current}, new_values={"status": new_status},
            metadata={"notes": notes} if notes else None, context=context,
        )
        await db.commit()

        logger.info(f"SOP {document.id} status {current.value} -> {new_status.value}")
        return document

    async def list_versions(self, db: AsyncSession, restaurant_id: str, document_id: str) -> List[SOPVersion]:
        await self.get_document(db, restaurant_id, document_id)
        result = await db.execute(
            select(SOPVersion)
            .where(SOPVersion.document_id == document_id, SOPVersion.restaurant_id == restaurant_id)
            .order_by(SOPVersion.version.desc())
        )
        return list(result.scalars().all())

    async def list_approvals(self, db: AsyncSession, restaurant_id: str, document_id: str) -> List[SOPApproval]:
        await self.get_document(db, restaurant_id, document_id)
        result = await db.execute(
            select(SOPApproval)
            .where(SOPApproval.document_id == document_id, SOPApproval.restaurant_id == restaurant_id)
            .order_by(SOPApproval.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== SEARCH ====================

    async def search(
        self,
        db: AsyncSession,
        restaurant_id: str,
        query: str,
        locale: str = "en",
        category_id: Optional[str] = None,
        approved_only: bool = False,
        limit: int = 50,
    ) -> Tuple[str, List[dict]]:
        """
        Bilingual search over titles, bodies and tags.

        Returns:
            The sanitized query and ranked result dicts
        """
        cleaned = sanitize_search_query(query)
        terms = search_terms(cleaned)
        if not terms:
            return cleaned, []

        conditions = []
        for term in terms:
            pattern = f"%{term}%"
            conditions.extend([
                SOPDocument.title.ilike(pattern),
                SOPDocument.title_th.ilike(pattern),
                SOPDocument.content.ilike(pattern),
                SOPDocument.content_th.ilike(pattern),
                cast(SOPDocument.tags, String).ilike(pattern),
                cast(SOPDocument.tags_th, String).ilike(pattern),
            ])

        stmt = self._documents(restaurant_id, approved_only).where(or_(*conditions))
        if category_id:
            stmt = stmt.where(SOPDocument.category_id == category_id)
        result = await db.execute(stmt)
        documents = result.scalars().all()

        ranked = []
        for document in documents:
            relevance = score_document(document, terms, locale)
            if relevance <= 0:
                continue
            thai = locale == "th"
            ranked.append({
                "id": document.id,
                "category_id": document.category_id,
                "title": document.title_th if thai else document.title,
                "snippet": build_snippet(document.content_th if thai else document.content, terms),
                "status": document.status,
                "priority": document.priority,
                "tags": (document.tags_th if thai else document.tags) or [],
                "relevance": relevance,
            })

        ranked.sort(key=lambda r: (-r["relevance"], r["title"]))
        return cleaned, ranked[:limit]


sop_service = SOPService()
