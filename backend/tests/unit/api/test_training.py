"""
Unit Tests for Training API Endpoints
Modules, progress, assessments and certificates
"""
import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient

from sopmanager.models import TrainingCertificate


def module_payload(**overrides) -> dict:
    payload = {
        'title': 'Food Safety Basics',
        'title_th': 'พื้นฐานความปลอดภัยอาหาร',
        'description': 'Hand hygiene and cold holding',
        'passing_score': 80,
        'max_attempts': 2,
        'validity_days': 365,
        'is_mandatory': True,
        'sections': [
            {
                'section_number': 1,
                'title': 'Hand Hygiene',
                'title_th': 'สุขอนามัยของมือ',
                'content': 'Wash for twenty seconds.',
                'content_th': 'ล้างมือยี่สิบวินาที',
                'sort_order': 1,
            },
            {
                'section_number': 2,
                'title': 'Cold Holding',
                'title_th': 'การเก็บรักษาความเย็น',
                'content': 'Keep below five degrees.',
                'content_th': 'เก็บต่ำกว่าห้าองศา',
                'sort_order': 2,
            },
        ],
        'questions': [
            {
                'question_type': 'multiple_choice',
                'question': 'How long should you wash your hands?',
                'question_th': 'ควรล้างมือนานเท่าไร',
                'options': ['5 seconds', '20 seconds', '1 minute'],
                'options_th': ['5 วินาที', '20 วินาที', '1 นาที'],
                'correct_answer': '1',
                'explanation': 'Twenty seconds removes most pathogens.',
                'explanation_th': 'ยี่สิบวินาทีกำจัดเชื้อโรคได้เกือบหมด',
                'sort_order': 1,
            },
            {
                'question_type': 'true_false',
                'question': 'Cold food is held below 5°C.',
                'question_th': 'อาหารเย็นต้องเก็บต่ำกว่า 5°C',
                'correct_answer': 'true',
                'sort_order': 2,
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_module(client: AsyncClient):
    async def _create(headers: dict, **overrides) -> dict:
        response = await client.post('/api/v1/training/modules', json=module_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
async def module(create_module, manager_headers) -> dict:
    return await create_module(manager_headers)


def answers_for(module: dict, correct: bool = True) -> dict:
    """Assessment body answering every question right, or every question wrong"""
    mc, tf = module['questions']
    return {
        'answers': [
            {'question_id': mc['id'], 'answer': '1' if correct else '0'},
            {'question_id': tf['id'], 'answer': 'true' if correct else 'false'},
        ],
        'time_spent_minutes': 5,
    }


@pytest.fixture
def work_through(client: AsyncClient):
    """Start the module and complete every section"""
    async def _work(headers: dict, module: dict) -> dict:
        base = f"/api/v1/training/modules/{module['id']}"
        progress = (await client.post(f'{base}/start', headers=headers)).json()
        for section in module['sections']:
            response = await client.post(
                f"{base}/sections/{section['id']}/complete", json={'time_spent_minutes': 3}, headers=headers
            )
            assert response.status_code == 200, response.text
            progress = response.json()
        return progress
    return _work


class TestModules:

    @pytest.mark.asyncio
    async def test_create_module(self, module, manager_user):
        assert module['restaurant_id'] == manager_user.restaurant_id
        assert module['section_count'] == 2
        assert module['question_count'] == 2
        assert module['questions'][0]['correct_answer'] == '1'
        assert module['is_active'] is True

    @pytest.mark.asyncio
    async def test_invalid_multiple_choice(self, client: AsyncClient, manager_headers):
        payload = module_payload()
        payload['questions'][0]['correct_answer'] = '7'

        response = await client.post('/api/v1/training/modules', json=payload, headers=manager_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_section_numbers(self, client: AsyncClient, manager_headers):
        payload = module_payload()
        payload['sections'][1]['section_number'] = 1

        response = await client.post('/api/v1/training/modules', json=payload, headers=manager_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_staff_cannot_create(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/training/modules', json=module_payload(), headers=staff_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_never_sees_answer_key(self, client: AsyncClient, module, staff_headers):
        response = await client.get(f"/api/v1/training/modules/{module['id']}", headers=staff_headers)

        assert response.status_code == 200
        for question in response.json()['questions']:
            assert question['correct_answer'] is None
            assert question['explanation'] is None

    @pytest.mark.asyncio
    async def test_list_modules(self, client: AsyncClient, module, create_module, manager_headers, staff_headers):
        await create_module(manager_headers, title='Allergen Awareness', is_mandatory=False)

        response = await client.get('/api/v1/training/modules', headers=staff_headers)

        data = response.json()
        assert data['total'] == 2
        # Mandatory modules first
        assert data['items'][0]['id'] == module['id']

    @pytest.mark.asyncio
    async def test_update_module(self, client: AsyncClient, module, manager_headers):
        response = await client.patch(f"/api/v1/training/modules/{module['id']}",
                                      json={'passing_score': 70}, headers=manager_headers)

        assert response.status_code == 200
        assert response.json()['passing_score'] == 70

    @pytest.mark.asyncio
    async def test_deactivated_module_hidden_from_staff(self, client: AsyncClient, module, manager_headers,
                                                        staff_headers):
        response = await client.delete(f"/api/v1/training/modules/{module['id']}", headers=manager_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/v1/training/modules/{module['id']}", headers=staff_headers)
        assert response.status_code == 404

        response = await client.post(f"/api/v1/training/modules/{module['id']}/start", headers=staff_headers)
        assert response.status_code == 404


class TestProgress:

    @pytest.mark.asyncio
    async def test_start_module(self, client: AsyncClient, module, staff_headers):
        response = await client.post(f"/api/v1/training/modules/{module['id']}/start", headers=staff_headers)

        assert response.status_code == 200
        progress = response.json()
        assert progress['status'] == 'in_progress'
        assert progress['attempt_number'] == 1
        assert progress['progress_percentage'] == 0
        assert progress['current_section_id'] == module['sections'][0]['id']

    @pytest.mark.asyncio
    async def test_start_twice_resumes(self, client: AsyncClient, module, staff_headers):
        url = f"/api/v1/training/modules/{module['id']}/start"
        first = await client.post(url, headers=staff_headers)
        second = await client.post(url, headers=staff_headers)

        assert first.json()['id'] == second.json()['id']

    @pytest.mark.asyncio
    async def test_complete_sections(self, client: AsyncClient, module, staff_headers):
        base = f"/api/v1/training/modules/{module['id']}"
        await client.post(f'{base}/start', headers=staff_headers)
        first, second = module['sections']

        response = await client.post(f"{base}/sections/{first['id']}/complete",
                                     json={'time_spent_minutes': 4}, headers=staff_headers)
        progress = response.json()
        assert progress['progress_percentage'] == 50
        assert progress['completed_section_ids'] == [first['id']]
        assert progress['current_section_id'] == second['id']
        assert progress['time_spent_minutes'] == 4

        response = await client.post(f"{base}/sections/{second['id']}/complete",
                                     json={'time_spent_minutes': 6}, headers=staff_headers)
        assert response.json()['progress_percentage'] == 100

    @pytest.mark.asyncio
    async def test_completing_section_twice_is_idempotent(self, client: AsyncClient, module, staff_headers):
        base = f"/api/v1/training/modules/{module['id']}"
        await client.post(f'{base}/start', headers=staff_headers)
        section_id = module['sections'][0]['id']

        await client.post(f'{base}/sections/{section_id}/complete', json={}, headers=staff_headers)
        response = await client.post(f'{base}/sections/{section_id}/complete', json={}, headers=staff_headers)

        assert response.json()['progress_percentage'] == 50

    @pytest.mark.asyncio
    async def test_section_without_attempt(self, client: AsyncClient, module, staff_headers):
        section_id = module['sections'][0]['id']

        response = await client.post(
            f"/api/v1/training/modules/{module['id']}/sections/{section_id}/complete", json={},
            headers=staff_headers,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_section(self, client: AsyncClient, module, staff_headers):
        base = f"/api/v1/training/modules/{module['id']}"
        await client.post(f'{base}/start', headers=staff_headers)

        response = await client.post(f'{base}/sections/not-a-section/complete', json={}, headers=staff_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_own_progress(self, client: AsyncClient, module, staff_headers, manager_headers,
                                     staff_user, work_through):
        await work_through(staff_headers, module)

        own = await client.get('/api/v1/training/progress', headers=staff_headers)
        as_manager = await client.get('/api/v1/training/progress', params={'user_id': staff_user.id},
                                      headers=manager_headers)

        assert len(own.json()) == 1
        assert own.json()[0]['progress_percentage'] == 100
        assert as_manager.json() == own.json()


class TestAssessment:

    @pytest.mark.asyncio
    async def test_pass_issues_certificate(self, client: AsyncClient, manager_headers, staff_headers,
                                           staff_user, category, create_sop, create_module, work_through):
        document = await create_sop(manager_headers, category.id, approve=True)
        module = await create_module(manager_headers, sop_document_id=document['id'])
        await work_through(staff_headers, module)

        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json=answers_for(module), headers=staff_headers)

        assert response.status_code == 200
        result = response.json()
        assert result['passed'] is True
        assert result['status'] == 'passed'
        assert result['score_percentage'] == 100.0
        assert result['correct_answers'] == 2
        assert result['results'][0]['correct_answer'] == '1'

        certificate = result['certificate']
        assert certificate['user_id'] == staff_user.id
        assert certificate['status'] == 'active'
        assert certificate['certificate_number'] == f'KR-FO-{datetime.utcnow().year}-001'
        assert certificate['certificate_data']['module_title_th'] == 'พื้นฐานความปลอดภัยอาหาร'

        progress = (await client.get('/api/v1/training/progress', headers=staff_headers)).json()
        assert progress[0]['status'] == 'completed'

    @pytest.mark.asyncio
    async def test_sequence_increments(self, client: AsyncClient, module, manager_headers, staff_headers,
                                       work_through):
        for headers in (staff_headers, manager_headers):
            await work_through(headers, module)
            response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                         json=answers_for(module), headers=headers)
            assert response.status_code == 200

        listed = await client.get('/api/v1/training/certificates', headers=manager_headers)
        numbers = sorted(c['certificate_number'] for c in listed.json()['items'])
        year = datetime.utcnow().year
        assert numbers == [f'KR-XX-{year}-001', f'KR-XX-{year}-002']

    @pytest.mark.asyncio
    async def test_partial_score_fails(self, client: AsyncClient, module, staff_headers, work_through):
        await work_through(staff_headers, module)
        body = answers_for(module)
        body['answers'][1]['answer'] = 'false'

        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json=body, headers=staff_headers)

        result = response.json()
        assert result['score_percentage'] == 50.0
        assert result['passed'] is False
        assert result['certificate'] is None

    @pytest.mark.asyncio
    async def test_retake_then_exhausted(self, client: AsyncClient, module, staff_headers, work_through):
        url = f"/api/v1/training/modules/{module['id']}"

        await work_through(staff_headers, module)
        first = (await client.post(f'{url}/assess', json=answers_for(module, correct=False),
                                   headers=staff_headers)).json()

        assert first['status'] == 'retake_required'
        assert first['attempts_remaining'] == 1
        # Answer key withheld while a retake is possible
        assert all(r['correct_answer'] is None for r in first['results'])

        progress = await work_through(staff_headers, module)
        assert progress['attempt_number'] == 2

        second = (await client.post(f'{url}/assess', json=answers_for(module, correct=False),
                                    headers=staff_headers)).json()

        assert second['status'] == 'failed'
        assert second['attempts_remaining'] == 0
        assert second['results'][0]['correct_answer'] == '1'

        response = await client.post(f'{url}/start', headers=staff_headers)
        assert response.status_code == 409
        assert response.json()['error']['code'] == 'MAX_ATTEMPTS_EXCEEDED'

    @pytest.mark.asyncio
    async def test_passed_attempt_uses_quota(self, client: AsyncClient, create_module, manager_headers,
                                             staff_headers, work_through):
        """A pass counts as an attempt, so it cannot be repeated for another certificate"""
        module = await create_module(manager_headers, max_attempts=1)
        url = f"/api/v1/training/modules/{module['id']}"

        await work_through(staff_headers, module)
        result = (await client.post(f'{url}/assess', json=answers_for(module), headers=staff_headers)).json()
        assert result['passed'] is True
        assert result['attempts_remaining'] == 0

        response = await client.post(f'{url}/start', headers=staff_headers)

        assert response.status_code == 409
        assert response.json()['error']['code'] == 'MAX_ATTEMPTS_EXCEEDED'

        listed = await client.get('/api/v1/training/certificates', headers=staff_headers)
        assert listed.json()['total'] == 1

    @pytest.mark.asyncio
    async def test_incomplete_training(self, client: AsyncClient, module, staff_headers):
        url = f"/api/v1/training/modules/{module['id']}"
        await client.post(f'{url}/start', headers=staff_headers)
        await client.post(f"{url}/sections/{module['sections'][0]['id']}/complete", json={},
                          headers=staff_headers)

        response = await client.post(f'{url}/assess', json=answers_for(module), headers=staff_headers)

        assert response.status_code == 409
        error = response.json()['error']
        assert error['code'] == 'TRAINING_INCOMPLETE'
        assert error['details']['progress_percentage'] == 50

    @pytest.mark.asyncio
    async def test_assess_without_attempt(self, client: AsyncClient, module, staff_headers):
        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json=answers_for(module), headers=staff_headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_module_without_questions(self, client: AsyncClient, create_module, manager_headers,
                                            staff_headers, work_through):
        module = await create_module(manager_headers, title='Uniform Policy', questions=[])
        await work_through(staff_headers, module)

        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json={'answers': []}, headers=staff_headers)

        result = response.json()
        assert result['passed'] is True
        assert result['score_percentage'] == 100.0
        assert result['certificate']['certificate_number'].startswith('KR-XX-')

    @pytest.mark.asyncio
    async def test_answers_are_case_insensitive(self, client: AsyncClient, module, staff_headers, work_through):
        await work_through(staff_headers, module)
        body = answers_for(module)
        body['answers'][1]['answer'] = ' TRUE '

        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json=body, headers=staff_headers)

        assert response.json()['passed'] is True


class TestCertificates:

    @pytest.fixture
    async def certificate(self, client: AsyncClient, module, staff_headers, work_through) -> dict:
        await work_through(staff_headers, module)
        response = await client.post(f"/api/v1/training/modules/{module['id']}/assess",
                                     json=answers_for(module), headers=staff_headers)
        return response.json()['certificate']

    @pytest.mark.asyncio
    async def test_list_own(self, client: AsyncClient, certificate, manager_headers):
        response = await client.get('/api/v1/training/certificates', headers=manager_headers)

        assert response.status_code == 200
        assert [c['id'] for c in response.json()['items']] == [certificate['id']]

    @pytest.mark.asyncio
    async def test_staff_only_sees_own(self, client: AsyncClient, certificate, make_user, restaurant, login):
        colleague = await make_user(restaurant, pin='4826')
        headers = await login(colleague, '4826')

        listed = await client.get('/api/v1/training/certificates', headers=headers)
        fetched = await client.get(f"/api/v1/training/certificates/{certificate['id']}", headers=headers)

        assert listed.json()['items'] == []
        assert fetched.status_code == 404

    @pytest.mark.asyncio
    async def test_verify(self, client: AsyncClient, certificate, manager_headers):
        response = await client.get(
            f"/api/v1/training/certificates/verify/{certificate['certificate_number']}", headers=manager_headers
        )

        assert response.status_code == 200
        assert response.json()['valid'] is True

    @pytest.mark.asyncio
    async def test_verify_unknown_number(self, client: AsyncClient, manager_headers):
        response = await client.get('/api/v1/training/certificates/verify/KR-XX-2020-999', headers=manager_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_text_rendering(self, client: AsyncClient, certificate, staff_headers):
        response = await client.get(f"/api/v1/training/certificates/{certificate['id']}/text",
                                    headers=staff_headers)

        text = response.json()['text']
        assert certificate['certificate_number'] in text
        assert 'Food Safety Basics' in text
        assert 'ACTIVE' in text

    @pytest.mark.asyncio
    async def test_revoke(self, client: AsyncClient, certificate, manager_headers):
        url = f"/api/v1/training/certificates/{certificate['id']}/revoke"

        response = await client.post(url, json={'reason': 'Issued in error'}, headers=manager_headers)

        assert response.status_code == 200
        assert response.json()['status'] == 'revoked'
        assert response.json()['revoked_reason'] == 'Issued in error'

        verified = await client.get(
            f"/api/v1/training/certificates/verify/{certificate['certificate_number']}", headers=manager_headers
        )
        assert verified.json()['valid'] is False

        again = await client.post(url, json={'reason': 'Twice'}, headers=manager_headers)
        assert again.status_code == 400

    @pytest.mark.asyncio
    async def test_staff_cannot_revoke(self, client: AsyncClient, certificate, staff_headers):
        response = await client.post(f"/api/v1/training/certificates/{certificate['id']}/revoke",
                                     json={'reason': 'Nope'}, headers=staff_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_expiry(self, client: AsyncClient, certificate, staff_headers, db_session):
        row = await db_session.get(TrainingCertificate, certificate['id'])
        row.expires_at = datetime.utcnow() - timedelta(days=1)
        await db_session.commit()

        listed = await client.get('/api/v1/training/certificates', headers=staff_headers)
        progress = await client.get('/api/v1/training/progress', headers=staff_headers)

        assert listed.json()['items'][0]['status'] == 'expired'
        assert progress.json()[0]['status'] == 'expired'
