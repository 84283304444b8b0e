"""
Translation Management API Tests

Covers keys, per-locale values, the review/publish workflow and the public
i18n bundles served to the tablets.
"""
import pytest
from httpx import AsyncClient

KEYS = '/api/v1/admin/translation-keys'
TRANSLATIONS = '/api/v1/admin/translations'


def key_payload(key_name: str = 'common.save', **overrides) -> dict:
    payload = {
        'key_name': key_name,
        'category': 'common',
        'description': f'Label for {key_name}',
        'translations': [
            {'locale': 'en', 'value': 'Save'},
            {'locale': 'th', 'value': 'บันทึก'},
        ],
    }
    payload.update(overrides)
    return payload


def by_locale(key: dict) -> dict:
    return {t['locale']: t for t in key['translations']}


@pytest.fixture
def create_key(client: AsyncClient):
    async def _create(headers: dict, key_name: str = 'common.save', **overrides) -> dict:
        response = await client.post(KEYS, json=key_payload(key_name, **overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def publish(client: AsyncClient, admin_headers):
    """Walk a translation from draft to published as an admin"""
    async def _publish(translation_id: str) -> dict:
        for target in ('review', 'approved', 'published'):
            response = await client.post(
                f'{TRANSLATIONS}/{translation_id}/status', json={'status': target}, headers=admin_headers
            )
            assert response.status_code == 200, response.text
        return response.json()
    return _publish


class TestTranslationKeys:

    @pytest.mark.asyncio
    async def test_create_key(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)

        assert key['key_name'] == 'common.save'
        assert key['namespace'] == 'common'
        assert key['is_active'] is True
        values = by_locale(key)
        assert set(values) == {'en', 'th'}
        assert values['th']['value'] == 'บันทึก'
        assert values['th']['status'] == 'draft'
        assert values['th']['version'] == 1

    @pytest.mark.asyncio
    async def test_explicit_namespace(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers, 'login.title', namespace='auth')
        assert key['namespace'] == 'auth'

    @pytest.mark.asyncio
    async def test_duplicate_key(self, client: AsyncClient, manager_headers, create_key):
        await create_key(manager_headers)

        response = await client.post(KEYS, json=key_payload(), headers=manager_headers)

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'CONFLICT'

    @pytest.mark.asyncio
    async def test_duplicate_locale_in_request(self, client: AsyncClient, manager_headers):
        payload = key_payload(translations=[
            {'locale': 'en', 'value': 'Save'},
            {'locale': 'en', 'value': 'Store'},
        ])

        response = await client.post(KEYS, json=payload, headers=manager_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unsupported_locale(self, client: AsyncClient, manager_headers):
        payload = key_payload(translations=[{'locale': 'de', 'value': 'Speichern'}])

        response = await client.post(KEYS, json=payload, headers=manager_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_key_name(self, client: AsyncClient, manager_headers):
        response = await client.post(KEYS, json=key_payload('1 bad key'), headers=manager_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_staff_cannot_manage_translations(self, client: AsyncClient, staff_headers):
        response = await client.get(KEYS, headers=staff_headers)

        assert response.status_code == 403
        assert response.json()['error']['details']['required_permission'] == 'translation:read'

    @pytest.mark.asyncio
    async def test_list_with_summary(self, client: AsyncClient, manager_headers, create_key):
        await create_key(manager_headers)
        await create_key(manager_headers, 'nav.home', category='navigation',
                         translations=[{'locale': 'en', 'value': 'Home'}])

        response = await client.get(KEYS, headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 2
        assert data['summary']['total_keys'] == 2
        assert data['summary']['total_translations'] == 3
        assert data['summary']['locale_breakdown']['en'] == 2
        assert data['summary']['status_breakdown']['draft'] == 3

    @pytest.mark.asyncio
    async def test_filter_by_category_and_search(self, client: AsyncClient, manager_headers, create_key):
        await create_key(manager_headers)
        await create_key(manager_headers, 'nav.home', category='navigation',
                         translations=[{'locale': 'en', 'value': 'Home'}])

        response = await client.get(KEYS, params={'category': 'navigation'}, headers=manager_headers)
        assert [k['key_name'] for k in response.json()['items']] == ['nav.home']

        response = await client.get(KEYS, params={'search': 'save'}, headers=manager_headers)
        assert [k['key_name'] for k in response.json()['items']] == ['common.save']

    @pytest.mark.asyncio
    async def test_update_key(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)

        response = await client.patch(
            f"{KEYS}/{key['id']}", json={'priority': 'high', 'feature_area': 'forms'}, headers=manager_headers
        )

        assert response.status_code == 200
        assert response.json()['priority'] == 'high'
        assert response.json()['feature_area'] == 'forms'

    @pytest.mark.asyncio
    async def test_get_missing_key(self, client: AsyncClient, manager_headers):
        response = await client.get(f'{KEYS}/does-not-exist', headers=manager_headers)
        assert response.status_code == 404


class TestTranslationValues:

    @pytest.mark.asyncio
    async def test_add_locale(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers, translations=[{'locale': 'en', 'value': 'Save'}])

        response = await client.post(
            TRANSLATIONS, json={'key_id': key['id'], 'locale': 'fr', 'value': 'Enregistrer'}, headers=manager_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data['locale'] == 'fr'
        assert data['status'] == 'draft'
        assert data['character_count'] == len('Enregistrer')
        assert data['word_count'] == 1

    @pytest.mark.asyncio
    async def test_existing_locale_conflicts(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)

        response = await client.post(
            TRANSLATIONS, json={'key_id': key['id'], 'locale': 'th', 'value': 'เก็บ'}, headers=manager_headers
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, client: AsyncClient, manager_headers, create_key, publish):
        key = await create_key(manager_headers)
        th = by_locale(key)['th']
        await publish(th['id'])

        response = await client.patch(
            f"{TRANSLATIONS}/{th['id']}",
            json={'value': 'บันทึกข้อมูล', 'change_reason': 'Clearer wording'},
            headers=manager_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data['value'] == 'บันทึกข้อมูล'
        assert data['previous_value'] == 'บันทึก'
        assert data['version'] == 2
        assert data['status'] == 'draft'

    @pytest.mark.asyncio
    async def test_same_value_keeps_version(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)
        th = by_locale(key)['th']

        response = await client.patch(f"{TRANSLATIONS}/{th['id']}", json={'value': 'บันทึก'}, headers=manager_headers)

        assert response.json()['version'] == 1

    @pytest.mark.asyncio
    async def test_history(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)
        en = by_locale(key)['en']
        await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'review'}, headers=manager_headers)
        await client.patch(
            f"{TRANSLATIONS}/{en['id']}", json={'value': 'Save changes', 'change_reason': 'Reviewer note'},
            headers=manager_headers,
        )

        response = await client.get(f"{TRANSLATIONS}/{en['id']}/history", headers=manager_headers)

        assert response.status_code == 200
        history = response.json()
        assert sorted(h['action'] for h in history) == ['created', 'status_changed', 'updated']
        updated = next(h for h in history if h['action'] == 'updated')
        assert updated['old_value'] == 'Save'
        assert updated['new_value'] == 'Save changes'
        assert updated['version_before'] == 1
        assert updated['version_after'] == 2
        assert updated['reason'] == 'Reviewer note'


class TestTranslationWorkflow:

    @pytest.mark.asyncio
    async def test_review_and_approve(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)
        en = by_locale(key)['en']

        response = await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'review'},
                                     headers=manager_headers)
        assert response.json()['status'] == 'review'

        response = await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'approved'},
                                     headers=manager_headers)
        data = response.json()
        assert data['status'] == 'approved'
        assert data['reviewed_at'] is not None
        assert data['approved_at'] is not None

    @pytest.mark.asyncio
    async def test_draft_cannot_be_published(self, client: AsyncClient, admin_headers, create_key):
        key = await create_key(admin_headers)
        en = by_locale(key)['en']

        response = await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'published'},
                                     headers=admin_headers)

        assert response.status_code == 409
        error = response.json()['error']
        assert error['code'] == 'INVALID_STATUS_TRANSITION'
        assert error['details']['allowed'] == ['review', 'approved']

    @pytest.mark.asyncio
    async def test_unchanged_status(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)
        en = by_locale(key)['en']

        response = await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'draft'},
                                     headers=manager_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'STATUS_UNCHANGED'

    @pytest.mark.asyncio
    async def test_manager_cannot_publish(self, client: AsyncClient, manager_headers, create_key):
        key = await create_key(manager_headers)
        en = by_locale(key)['en']
        for target in ('review', 'approved'):
            await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': target}, headers=manager_headers)

        response = await client.post(f"{TRANSLATIONS}/{en['id']}/status", json={'status': 'published'},
                                     headers=manager_headers)

        assert response.status_code == 403
        assert response.json()['error']['details']['required_permission'] == 'translation:publish'

    @pytest.mark.asyncio
    async def test_admin_publishes(self, client: AsyncClient, manager_headers, create_key, publish):
        key = await create_key(manager_headers)

        published = await publish(by_locale(key)['en']['id'])

        assert published['status'] == 'published'
        assert published['published_at'] is not None


class TestLocaleBundles:

    @pytest.mark.asyncio
    async def test_locales(self, client: AsyncClient):
        response = await client.get('/api/v1/i18n/locales')

        assert response.status_code == 200
        data = response.json()
        assert data['default'] == 'en'
        assert data['content_locales'] == ['en', 'th']
        assert data['translation_locales'] == ['en', 'th', 'fr']

    @pytest.mark.asyncio
    async def test_bundle_serves_published_values(self, client: AsyncClient, manager_headers, create_key, publish):
        key = await create_key(manager_headers)
        await publish(by_locale(key)['th']['id'])

        response = await client.get('/api/v1/i18n/th')

        assert response.status_code == 200
        data = response.json()
        assert data['locale'] == 'th'
        assert data['translations'] == {'common.save': 'บันทึก'}
        assert data['key_count'] == 1

    @pytest.mark.asyncio
    async def test_drafts_are_not_served(self, client: AsyncClient, manager_headers, create_key):
        await create_key(manager_headers)

        response = await client.get('/api/v1/i18n/th')

        assert response.json()['translations'] == {}

    @pytest.mark.asyncio
    async def test_english_fallback(self, client: AsyncClient, manager_headers, create_key, publish):
        save = await create_key(manager_headers)
        home = await create_key(manager_headers, 'nav.home', category='navigation',
                                translations=[{'locale': 'en', 'value': 'Home'}])
        await publish(by_locale(save)['th']['id'])
        await publish(by_locale(home)['en']['id'])

        th = (await client.get('/api/v1/i18n/th')).json()
        fr = (await client.get('/api/v1/i18n/fr')).json()

        assert th['translations'] == {'common.save': 'บันทึก', 'nav.home': 'Home'}
        assert fr['translations'] == {'nav.home': 'Home'}

    @pytest.mark.asyncio
    async def test_namespace_filter(self, client: AsyncClient, manager_headers, create_key, publish):
        save = await create_key(manager_headers)
        home = await create_key(manager_headers, 'nav.home', category='navigation',
                                translations=[{'locale': 'en', 'value': 'Home'}])
        await publish(by_locale(save)['en']['id'])
        await publish(by_locale(home)['en']['id'])

        response = await client.get('/api/v1/i18n/en', params={'namespace': 'nav'})

        data = response.json()
        assert data['namespace'] == 'nav'
        assert data['translations'] == {'nav.home': 'Home'}

    @pytest.mark.asyncio
    async def test_unsupported_locale(self, client: AsyncClient):
        response = await client.get('/api/v1/i18n/de')

        assert response.status_code == 422
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_cache_is_rebuilt_after_publish(self, client: AsyncClient, manager_headers, create_key, publish):
        key = await create_key(manager_headers)

        first = (await client.get('/api/v1/i18n/th')).json()
        again = (await client.get('/api/v1/i18n/th')).json()
        assert first['cache_version'] == again['cache_version'] == 1

        await publish(by_locale(key)['en']['id'])
        rebuilt = (await client.get('/api/v1/i18n/th')).json()

        assert rebuilt['cache_version'] == 2
        assert rebuilt['translations'] == {'common.save': 'Save'}

    @pytest.mark.asyncio
    async def test_deactivated_key_leaves_bundle(self, client: AsyncClient, manager_headers, create_key, publish):
        key = await create_key(manager_headers)
        await publish(by_locale(key)['en']['id'])
        assert (await client.get('/api/v1/i18n/en')).json()['translations'] == {'common.save': 'Save'}

        response = await client.delete(f"{KEYS}/{key['id']}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()['message'] == "Translation key 'common.save' deactivated"

        assert (await client.get('/api/v1/i18n/en')).json()['translations'] == {}


class TestCacheInvalidation:

    @pytest.mark.asyncio
    async def test_admin_invalidates(self, client: AsyncClient, admin_headers):
        await client.get('/api/v1/i18n/en')
        await client.get('/api/v1/i18n/th')

        response = await client.post(f'{TRANSLATIONS}/cache/invalidate', json={}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['invalidated_entries'] == 2
        assert (await client.get('/api/v1/i18n/th')).json()['cache_version'] == 2

    @pytest.mark.asyncio
    async def test_single_locale(self, client: AsyncClient, admin_headers):
        await client.get('/api/v1/i18n/en')
        await client.get('/api/v1/i18n/th')

        response = await client.post(
            f'{TRANSLATIONS}/cache/invalidate', json={'locales': ['th']}, headers=admin_headers
        )

        assert response.json()['invalidated_entries'] == 1
        assert (await client.get('/api/v1/i18n/en')).json()['cache_version'] == 1

    @pytest.mark.asyncio
    async def test_manager_cannot_invalidate(self, client: AsyncClient, manager_headers):
        response = await client.post(f'{TRANSLATIONS}/cache/invalidate', json={}, headers=manager_headers)
        assert response.status_code == 403
