"""
Translation Service - Keys, per-locale values, review workflow, history
and the compiled bundle cache

Every change to a value or its status writes a history row and invalidates
the cached bundles of that locale whose namespace is the key's namespace or
the all-namespaces bundle.
"""

from datetime import datetime, timedelta
from typing import Optional, List, Dict, Tuple, Any

from sqlalchemy import select, func, update, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.core.config import settings
from sopmanager.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStatusTransitionError,
    ResourceNotFoundError,
    StatusUnchangedError,
    ValidationError,
)
from sopmanager.core.logging_config import logger
from sopmanager.core.permissions import Permission, has_permission
from sopmanager.models.audit_log import AuditAction
from sopmanager.models.translation import (
    ALL_NAMESPACES,
    TranslationKey,
    Translation,
    TranslationHistory,
    TranslationCacheEntry,
    TranslationStatus,
    TranslationCategory,
)
from sopmanager.models.user import User
from sopmanager.schemas.translation import (
    TranslationKeyCreate,
    TranslationKeyUpdate,
    TranslationCreate,
    TranslationUpdate,
)
from sopmanager.services.audit_service import AuditContext, audit_service, diff_values
from sopmanager.services.cache_service import cache_service
from sopmanager.utils.pagination import paginate

TRANSLATION_STATUS_TRANSITIONS: Dict[TranslationStatus, Tuple[TranslationStatus, ...]] = {
    TranslationStatus.DRAFT: (TranslationStatus.REVIEW, TranslationStatus.APPROVED),
    TranslationStatus.REVIEW: (TranslationStatus.DRAFT, TranslationStatus.APPROVED),
    TranslationStatus.APPROVED: (TranslationStatus.PUBLISHED, TranslationStatus.REVIEW),
    TranslationStatus.PUBLISHED: (TranslationStatus.REVIEW, TranslationStatus.DEPRECATED),
    TranslationStatus.DEPRECATED: (TranslationStatus.DRAFT,),
}

KEY_FIELDS = (
    "category", "description", "context_notes", "interpolation_vars", "supports_pluralization",
    "feature_area", "priority", "is_active",
)

FALLBACK_LOCALE = "en"


def allowed_translation_transitions(status: TranslationStatus) -> List[TranslationStatus]:
    return list(TRANSLATION_STATUS_TRANSITIONS.get(status, ()))


def merge_bundle(rows: List[Tuple[str, str, str]], locale: str) -> Dict[str, str]:
    """
    Flatten (key_name, locale, value) rows into {key_name: value}, preferring
    the requested locale and falling back to English.
    """
    bundle: Dict[str, str] = {}
    for key_name, row_locale, value in rows:
        if row_locale == FALLBACK_LOCALE:
            bundle.setdefault(key_name, value)
    for key_name, row_locale, value in rows:
        if row_locale == locale:
            bundle[key_name] = value
    return dict(sorted(bundle.items()))


class TranslationService:
    """Service for managing UI translations"""

    # ==================== HELPERS ====================

    def _check_locale(self, locale: str) -> None:
        if locale not in settings.TRANSLATION_LOCALES:
            raise ValidationError(
                f"Unsupported locale '{locale}'. Supported: {', '.join(settings.TRANSLATION_LOCALES)}",
                field="locale",
            )

    def _history(
        self,
        db: AsyncSession,
        translation: Translation,
        action: str,
        actor: Optional[User],
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        old_status: Optional[TranslationStatus] = None,
        new_status: Optional[TranslationStatus] = None,
        version_before: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> TranslationHistory:
        entry = TranslationHistory(
            translation_id=translation.id,
            key_id=translation.key_id,
            action=action,
            locale=translation.locale,
            old_value=old_value,
            new_value=new_value,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value if new_status else None,
            version_before=version_before,
            version_after=translation.version,
            reason=reason,
            changed_by=actor.id if actor else None,
        )
        db.add(entry)
        return entry

    async def _key_namespace(self, db: AsyncSession, key_id: str) -> Optional[str]:
        return await db.scalar(select(TranslationKey.namespace).where(TranslationKey.id == key_id))

    async def _reload_key(self, db: AsyncSession, key: TranslationKey) -> TranslationKey:
        """Fresh instance so the selectin-loaded translations are current"""
        key_id = key.id
        db.expunge(key)
        return await self.get_key(db, key_id)

    # ==================== KEYS ====================

    async def list_keys(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        category: Optional[TranslationCategory] = None,
        namespace: Optional[str] = None,
        search: Optional[str] = None,
        locale: Optional[str] = None,
        status: Optional[TranslationStatus] = None,
        is_active: Optional[bool] = None,
        include_summary: bool = True,
    ) -> dict:
        query = select(TranslationKey)
        if category:
            query = query.where(TranslationKey.category == category)
        if namespace:
            query = query.where(TranslationKey.namespace == namespace)
        if is_active is not None:
            query = query.where(TranslationKey.is_active == is_active)
        if search:
            term = f"%{search.strip()}%"
            value_match = select(Translation.key_id).where(Translation.value.ilike(term))
            query = query.where(or_(
                TranslationKey.key_name.ilike(term),
                TranslationKey.description.ilike(term),
                TranslationKey.id.in_(value_match),
            ))
        if locale or status:
            conditions = []
            if locale:
                conditions.append(Translation.locale == locale)
            if status:
                conditions.append(Translation.status == status)
            query = query.where(TranslationKey.id.in_(select(Translation.key_id).where(and_(*conditions))))

        query = query.order_by(TranslationKey.key_name)
        page_data = await paginate(db, query, page, page_size)
        page_data["summary"] = await self.summary(db) if include_summary else None
        return page_data

    async def summary(self, db: AsyncSession) -> Dict[str, Any]:
        total_keys = await db.scalar(select(func.count(TranslationKey.id))) or 0
        total_translations = await db.scalar(select(func.count(Translation.id))) or 0

        status_rows = await db.execute(
            select(Translation.status, func.count(Translation.id)).group_by(Translation.status)
        )
        locale_rows = await db.execute(
            select(Translation.locale, func.count(Translation.id)).group_by(Translation.locale)
        )
        category_rows = await db.execute(
            select(TranslationKey.category, func.count(TranslationKey.id)).group_by(TranslationKey.category)
        )
        return {
            "total_keys": total_keys,
            "total_translations": total_translations,
            "status_breakdown": {s.value: c for s, c in status_rows.all()},
            "locale_breakdown": {loc: c for loc, c in locale_rows.all()},
            "category_breakdown": {cat.value: c for cat, c in category_rows.all()},
        }

    async def get_key(self, db: AsyncSession, key_id: str) -> TranslationKey:
        result = await db.execute(select(TranslationKey).where(TranslationKey.id == key_id))
        key = result.scalar_one_or_none()
        if not key:
            raise ResourceNotFoundError("TranslationKey", key_id)
        return key

    async def create_key(
        self,
        db: AsyncSession,
        data: TranslationKeyCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TranslationKey:
        existing = await db.execute(select(TranslationKey.id).where(TranslationKey.key_name == data.key_name))
        if existing.scalar_one_or_none():
            raise ConflictError(f"Translation key '{data.key_name}' already exists", details={"field": "key_name"})

        locales = [t.locale for t in data.translations]
        if len(locales) != len(set(locales)):
            raise ValidationError("Each locale may appear only once", field="translations")
        for locale in locales:
            self._check_locale(locale)

        key = TranslationKey(
            **data.model_dump(exclude={"translations", "namespace"}),
            namespace=data.namespace or TranslationKey.namespace_for(data.key_name),
            is_active=True,
            created_by=actor.id,
        )
        db.add(key)
        await db.flush()

        for value in data.translations:
            translation = Translation(
                key_id=key.id,
                locale=value.locale,
                icu_message=value.icu_message,
                status=TranslationStatus.DRAFT,
                version=1,
                created_by=actor.id,
                updated_by=actor.id,
            )
            translation.set_value(value.value)
            db.add(translation)
            await db.flush()
            self._history(db, translation, "created", actor, new_value=value.value,
                          new_status=TranslationStatus.DRAFT)

        audit_service.record(
            db, AuditAction.CREATE, "translation_key", key.id, user=actor,
            new_values={"key_name": key.key_name, "category": key.category, "locales": locales},
            context=context,
        )
        await db.commit()

        logger.info(f"Created translation key {key.key_name}")
        return await self._reload_key(db, key)

    async def update_key(
        self,
        db: AsyncSession,
        key_id: str,
        data: TranslationKeyUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TranslationKey:
        key = await self.get_key(db, key_id)
        changes = data.model_dump(exclude_unset=True)

        before = {f: getattr(key, f) for f in KEY_FIELDS}
        for field, value in changes.items():
            setattr(key, field, value)

        old_values, new_values = diff_values(before, {f: getattr(key, f) for f in KEY_FIELDS})
        if new_values:
            audit_service.record(
                db, AuditAction.UPDATE, "translation_key", key.id, user=actor,
                old_values=old_values, new_values=new_values, context=context,
            )
            if "is_active" in new_values:
                for translation in key.translations:
                    await self.invalidate_cache(db, translation.locale, key.namespace)
        await db.commit()
        return key

    async def deactivate_key(
        self,
        db: AsyncSession,
        key_id: str,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> TranslationKey:
        key = await self.get_key(db, key_id)
        key.is_active = False
        for translation in key.translations:
            await self.invalidate_cache(db, translation.locale, key.namespace)

        audit_service.record(
            db, AuditAction.DELETE, "translation_key", key.id, user=actor,
            old_values={"is_active": True}, new_values={"is_active": False}, context=context,
        )
        await db.commit()
        return key

    # ==================== TRANSLATIONS ====================

    async def get_translation(self, db: AsyncSession, translation_id: str) -> Translation:
        result = await db.execute(select(Translation).where(Translation.id == translation_id))
        translation = result.scalar_one_or_none()
        if not translation:
            raise ResourceNotFoundError("Translation", translation_id)
        return translation

    async def create_translation(
        self,
        db: AsyncSession,
        data: TranslationCreate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> Translation:
        key = await self.get_key(db, data.key_id)
        self._check_locale(data.locale)

        existing = await db.execute(
            select(Translation.id).where(Translation.key_id == key.id, Translation.locale == data.locale)
        )
        if existing.scalar_one_or_none():
            raise ConflictError(
                f"'{key.key_name}' already has a {data.locale} translation",
                details={"key_id": key.id, "locale": data.locale},
            )

        translation = Translation(
            key_id=key.id,
            locale=data.locale,
            icu_message=data.icu_message,
            notes=data.notes,
            status=TranslationStatus.DRAFT,
            version=1,
            created_by=actor.id,
            updated_by=actor.id,
        )
        translation.set_value(data.value)
        db.add(translation)
        await db.flush()

        self._history(db, translation, "created", actor, new_value=data.value,
                      new_status=TranslationStatus.DRAFT)
        audit_service.record(
            db, AuditAction.CREATE, "translation", translation.id, user=actor,
            new_values={"key_name": key.key_name, "locale": data.locale}, context=context,
        )
        await self.invalidate_cache(db, translation.locale, key.namespace)
        await db.commit()
        return translation

    async def update_translation(
        self,
        db: AsyncSession,
        translation_id: str,
        data: TranslationUpdate,
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> Translation:
        """A new value bumps the version and sends the translation back to draft"""
        translation = await self.get_translation(db, translation_id)
        old_value = translation.value
        old_status = translation.status
        old_version = translation.version

        if data.icu_message is not None:
            translation.icu_message = data.icu_message
        if data.notes is not None:
            translation.notes = data.notes
        translation.updated_by = actor.id

        if data.value != old_value:
            translation.previous_value = old_value
            translation.set_value(data.value)
            translation.version = old_version + 1
            translation.status = TranslationStatus.DRAFT

            self._history(
                db, translation, "updated", actor,
                old_value=old_value, new_value=data.value,
                old_status=old_status, new_status=translation.status,
                version_before=old_version, reason=data.change_reason,
            )
            audit_service.record(
                db, AuditAction.UPDATE, "translation", translation.id, user=actor,
                old_values={"value": old_value, "version": old_version, "status": old_status},
                new_values={"value": data.value, "version": translation.version, "status": translation.status},
                context=context,
            )
            await self.invalidate_cache(db, translation.locale, await self._key_namespace(db, translation.key_id))

        await db.commit()
        return translation

    async def change_status(
        self,
        db: AsyncSession,
        translation_id: str,
        new_status: TranslationStatus,
        actor: User,
        reason: Optional[str] = None,
        context: Optional[AuditContext] = None,
    ) -> Translation:
        translation = await self.get_translation(db, translation_id)
        current = translation.status

        if new_status == current:
            raise StatusUnchangedError(current.value)

        allowed = allowed_translation_transitions(current)
        if new_status not in allowed:
            raise InvalidStatusTransitionError(current.value, new_status.value, [s.value for s in allowed])

        if new_status == TranslationStatus.PUBLISHED and not has_permission(actor.role, Permission.TRANSLATION_PUBLISH):
            raise AuthorizationError(
                "Publishing translations requires publish rights",
                permission=Permission.TRANSLATION_PUBLISH.value,
            )

        now = datetime.utcnow()
        if current == TranslationStatus.REVIEW:
            translation.reviewed_by = actor.id
            translation.reviewed_at = now
        if new_status == TranslationStatus.APPROVED:
            translation.approved_by = actor.id
            translation.approved_at = now
        elif new_status == TranslationStatus.PUBLISHED:
            translation.published_by = actor.id
            translation.published_at = now

        translation.status = new_status
        translation.updated_by = actor.id

        self._history(
            db, translation, "status_changed", actor,
            old_status=current, new_status=new_status,
            version_before=translation.version, reason=reason,
        )
        action = {
            TranslationStatus.APPROVED: AuditAction.APPROVE,
            TranslationStatus.DRAFT: AuditAction.REJECT if current == TranslationStatus.REVIEW else AuditAction.UPDATE,
        }.get(new_status, AuditAction.UPDATE)
        audit_service.record(
            db, action, "translation", translation.id, user=actor,
            old_values={"status": current}, new_values={"status": new_status},
            metadata={"reason": reason} if reason else None, context=context,
        )
        await self.invalidate_cache(db, translation.locale, await self._key_namespace(db, translation.key_id))
        await db.commit()

        logger.info(f"Translation {translation.id} ({translation.locale}) {current.value} -> {new_status.value}")
        return translation

    async def get_history(self, db: AsyncSession, translation_id: str) -> List[TranslationHistory]:
        await self.get_translation(db, translation_id)
        result = await db.execute(
            select(TranslationHistory)
            .where(TranslationHistory.translation_id == translation_id)
            .order_by(TranslationHistory.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== CACHE ====================

    async def invalidate_cache(self, db: AsyncSession, locale: str, namespace: Optional[str] = None) -> int:
        """
        Mark cached bundles of `locale` for `namespace` and the all-namespaces
        bundle invalid. Without a namespace every bundle of the locale goes.
        Rebuilt entries keep counting up `cache_version`.

        English feeds every locale through fallback, so an English change
        invalidates all translation locales.
        """
        locales = settings.TRANSLATION_LOCALES if locale == FALLBACK_LOCALE else [locale]
        stmt = (
            update(TranslationCacheEntry)
            .where(TranslationCacheEntry.locale.in_(locales), TranslationCacheEntry.is_valid == True)  # noqa: E712
            .values(is_valid=False)
        )
        if namespace:
            stmt = stmt.where(TranslationCacheEntry.namespace.in_([namespace, ALL_NAMESPACES]))
        result = await db.execute(stmt)
        for name in locales:
            await cache_service.invalidate_bundles(name, namespace)
        return result.rowcount or 0

    async def invalidate_many(
        self,
        db: AsyncSession,
        locales: List[str],
        namespaces: List[str],
        actor: User,
        context: Optional[AuditContext] = None,
    ) -> int:
        locales = locales or settings.TRANSLATION_LOCALES
        count = 0
        for locale in locales:
            self._check_locale(locale)
            if namespaces:
                for namespace in namespaces:
                    count += await self.invalidate_cache(db, locale, namespace)
            else:
                count += await self.invalidate_cache(db, locale)

        audit_service.record(
            db, AuditAction.DELETE, "translation_cache", None, user=actor,
            metadata={"locales": locales, "namespaces": namespaces, "entries": count},
            context=context,
        )
        await db.commit()
        logger.info(f"Invalidated {count} translation cache entries")
        return count

    # ==================== PUBLIC BUNDLE ====================

    async def get_bundle(self, db: AsyncSession, locale: str, namespace: Optional[str] = None) -> Dict[str, Any]:
        """
        Published {key_name: value} map for a locale, served from cache.

        Lookup order: Redis, the translation_cache table, then a rebuild
        from published rows with English fallback.
        """
        self._check_locale(locale)

        cached = await cache_service.get_bundle(locale, namespace)
        if cached:
            return cached

        entry = await self._cache_entry(db, locale, namespace)

        if entry and entry.is_fresh():
            payload = self._bundle_payload(entry)
            await cache_service.set_bundle(locale, namespace, payload)
            return payload

        query = (
            select(TranslationKey.key_name, Translation.locale, Translation.value)
            .join(Translation, Translation.key_id == TranslationKey.id)
            .where(
                TranslationKey.is_active == True,  # noqa: E712
                Translation.status == TranslationStatus.PUBLISHED,
                Translation.locale.in_(sorted({locale, FALLBACK_LOCALE})),
            )
        )
        if namespace:
            query = query.where(TranslationKey.namespace == namespace)
        rows = (await db.execute(query)).all()
        bundle = merge_bundle([tuple(r) for r in rows], locale)

        now = datetime.utcnow()
        expires_at = now + timedelta(seconds=settings.TRANSLATION_CACHE_TTL_SECONDS)
        if entry:
            entry.translations_json = bundle
            entry.key_count = len(bundle)
            entry.cache_version = (entry.cache_version or 0) + 1
            entry.expires_at = expires_at
            entry.is_valid = True
        else:
            entry = TranslationCacheEntry(
                locale=locale,
                namespace=namespace or ALL_NAMESPACES,
                translations_json=bundle,
                key_count=len(bundle),
                cache_version=1,
                expires_at=expires_at,
                is_valid=True,
            )
            db.add(entry)
        try:
            await db.commit()
        except IntegrityError:
            # Another request stored this bundle first; serve its row
            await db.rollback()
            entry = await self._cache_entry(db, locale, namespace)
            logger.debug(f"Translation bundle {locale}/{namespace or ALL_NAMESPACES} built concurrently")
        else:
            logger.debug(f"Rebuilt translation bundle {locale}/{namespace or ALL_NAMESPACES} ({len(bundle)} keys)")

        payload = self._bundle_payload(entry)
        await cache_service.set_bundle(locale, namespace, payload)
        return payload

    async def _cache_entry(
        self, db: AsyncSession, locale: str, namespace: Optional[str]
    ) -> Optional[TranslationCacheEntry]:
        result = await db.execute(
            select(TranslationCacheEntry).where(
                TranslationCacheEntry.locale == locale,
                TranslationCacheEntry.namespace == (namespace or ALL_NAMESPACES),
            )
        )
        return result.scalar_one_or_none()

    def _bundle_payload(self, entry: TranslationCacheEntry) -> Dict[str, Any]:
        return {
            "locale": entry.locale,
            "namespace": None if entry.namespace == ALL_NAMESPACES else entry.namespace,
            "cache_version": entry.cache_version,
            "key_count": entry.key_count,
            "translations": entry.translations_json or {},
        }

    def list_locales(self) -> Dict[str, Any]:
        return {
            "default": settings.DEFAULT_LOCALE,
            "content_locales": settings.SUPPORTED_LOCALES,
            "translation_locales": settings.TRANSLATION_LOCALES,
        }


translation_service = TranslationService()
