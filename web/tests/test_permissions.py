import json

import pytest

from core.models import Flashcard

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize(
    'method, url',
    [
        ('get', '/api/v1/flashcards/'),
        ('post', '/api/v1/flashcards/batch'),
        ('get', '/api/v1/study/due'),
        ('get', '/api/v1/study/due/count'),
        ('get', '/api/v1/generations/'),
    ],
)
def test_anonymous_requests_are_unauthorized(api_client, method, url):
    response = getattr(api_client, method)(url)

    assert response.status_code == 401
    assert response.json()['error']['code'] == 'UNAUTHORIZED'


def test_flashcard_endpoints_hide_other_users_cards(api_client, user_factory, flashcard_factory):
    user = user_factory()
    other = user_factory()
    card = flashcard_factory(user=other, front='Private')
    api_client.force_login(user)

    assert api_client.get(f'/api/v1/flashcards/{card.id}').status_code == 404
    assert api_client.get(f'/api/v1/flashcards/{card.id}/previews').status_code == 404
    response = api_client.put(
        f'/api/v1/flashcards/{card.id}',
        data=json.dumps({'front': 'Stolen', 'back': 'x'}),
        content_type='application/json',
    )
    assert response.status_code == 404
    assert api_client.delete(f'/api/v1/flashcards/{card.id}').status_code == 404

    response = api_client.post(
        f'/api/v1/flashcards/{card.id}/review',
        data=json.dumps({'quality': 5}),
        content_type='application/json',
    )
    assert response.status_code == 404

    card.refresh_from_db()
    assert card.front == 'Private'
    assert card.repetition == 0


def test_listings_only_show_own_records(api_client, user_factory, flashcard_factory, generation_factory):
    user = user_factory()
    other = user_factory()
    own_card = flashcard_factory(user=user)
    flashcard_factory(user=other)
    generation_factory(user=other)
    api_client.force_login(user)

    cards = api_client.get('/api/v1/flashcards/').json()
    assert [item['id'] for item in cards['data']] == [str(own_card.id)]
    assert api_client.get('/api/v1/study/due/count').json() == {'due_count': 1}
    assert api_client.get('/api/v1/generations/').json()['data'] == []


def test_foreign_generation_detail_is_not_found(api_client, user_factory, generation_factory):
    generation = generation_factory()
    api_client.force_login(user_factory())

    assert api_client.get(f'/api/v1/generations/{generation.id}').status_code == 404


def test_partially_foreign_batch_creates_nothing(api_client, user_factory, generation_factory):
    user = user_factory()
    own = generation_factory(user=user)
    foreign = generation_factory()
    api_client.force_login(user)
    payload = {
        'flashcards': [
            {'front': 'Q1', 'back': 'A', 'generation_type': 'ai', 'generation_id': own.id},
            {'front': 'Q2', 'back': 'A', 'generation_type': 'ai', 'generation_id': foreign.id},
        ]
    }

    response = api_client.post('/api/v1/flashcards/batch', data=json.dumps(payload), content_type='application/json')

    assert response.status_code == 403
    assert Flashcard.objects.count() == 0
    own.refresh_from_db()
    assert own.accepted_count is None
