"""
Unit Tests for the translation bundle cache rows
Tests for: all-namespaces row, concurrent rebuilds, namespace invalidation
"""
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sopmanager.models.translation import ALL_NAMESPACES, TranslationCacheEntry
from sopmanager.services.translation_service import translation_service


def cache_entry(namespace: str = ALL_NAMESPACES, **overrides) -> TranslationCacheEntry:
    data = {
        'locale': 'en',
        'namespace': namespace,
        'translations_json': {'nav.home': 'Home'},
        'key_count': 1,
        'cache_version': 3,
        'expires_at': datetime.utcnow() + timedelta(hours=1),
        'is_valid': True,
    }
    data.update(overrides)
    return TranslationCacheEntry(**data)


async def cache_rows(db: AsyncSession, locale: str = 'en') -> list:
    result = await db.execute(select(TranslationCacheEntry).where(TranslationCacheEntry.locale == locale))
    return list(result.scalars().all())


class TestBundleRows:

    @pytest.mark.asyncio
    async def test_all_namespaces_bundle_is_stored_once(self, db_session: AsyncSession):
        first = await translation_service.get_bundle(db_session, 'en')
        await translation_service.invalidate_cache(db_session, 'en')
        await db_session.commit()
        second = await translation_service.get_bundle(db_session, 'en')

        rows = await cache_rows(db_session)
        assert len(rows) == 1
        assert rows[0].namespace == ALL_NAMESPACES
        assert first['namespace'] is None
        assert second['cache_version'] == first['cache_version'] + 1

    @pytest.mark.asyncio
    async def test_concurrent_rebuild_serves_stored_row(self, db_session: AsyncSession, monkeypatch):
        """A rebuild that loses the insert race returns the row stored first"""
        db_session.add(cache_entry())
        await db_session.commit()

        lookup = translation_service._cache_entry
        calls = []

        async def stale_first_lookup(db, locale, namespace):
            calls.append(namespace)
            if len(calls) == 1:
                return None
            return await lookup(db, locale, namespace)

        monkeypatch.setattr(translation_service, '_cache_entry', stale_first_lookup)

        payload = await translation_service.get_bundle(db_session, 'en')

        assert len(calls) == 2
        assert payload['cache_version'] == 3
        assert payload['translations'] == {'nav.home': 'Home'}
        assert len(await cache_rows(db_session)) == 1

    @pytest.mark.asyncio
    async def test_namespace_change_invalidates_all_namespaces_bundle(self, db_session: AsyncSession):
        db_session.add_all([
            cache_entry(locale='th'),
            cache_entry(namespace='nav', locale='th'),
            cache_entry(namespace='auth', locale='th'),
        ])
        await db_session.commit()

        count = await translation_service.invalidate_cache(db_session, 'th', 'nav')
        await db_session.commit()

        assert count == 2
        valid = {row.namespace: row.is_valid for row in await cache_rows(db_session, 'th')}
        assert valid == {ALL_NAMESPACES: False, 'nav': False, 'auth': True}
