import pytest
from django.db import DatabaseError as DjangoDatabaseError
from django.db import IntegrityError, connection, transaction
from django.test.utils import CaptureQueriesContext

from core import errors
from core.models import Flashcard, Generation
from core.services import flashcards as flashcard_service
from core.services.flashcards import AiItem, ManualItem, create_flashcards_batch, item_from_payload

pytestmark = pytest.mark.django_db


def test_manual_only_batch_never_reads_generations(user_factory):
    user = user_factory()
    items = [ManualItem('Q1', 'A1'), ManualItem('Q2', 'A2')]

    with CaptureQueriesContext(connection) as ctx:
        result = create_flashcards_batch(user, items)

    assert len(result.flashcards) == 2
    assert result.warnings == []
    assert not any('core_generation' in query['sql'] for query in ctx.captured_queries)


def test_new_cards_get_initial_scheduling_state(user_factory):
    user = user_factory()
    result = create_flashcards_batch(user, [ManualItem('Q', 'A')])

    card = Flashcard.objects.get(id=result.flashcards[0].id)
    assert card.user == user
    assert card.generation_type == Flashcard.TYPE_MANUAL
    assert card.generation_id is None
    assert (card.interval, card.repetition) == (0, 0)
    assert card.ease_factor == pytest.approx(2.5)
    assert card.due_date == card.created_at


def test_accepted_count_starts_from_null(user_factory, generation_factory):
    user = user_factory()
    generation = generation_factory(user=user, generated_count=5, accepted_count=None)
    items = [AiItem(f'Q{i}', f'A{i}', generation.id) for i in range(3)]

    result = create_flashcards_batch(user, items)

    generation.refresh_from_db()
    assert generation.accepted_count == 3
    assert len(result.flashcards) == 3
    assert all(card.generation_id == generation.id for card in result.flashcards)


def test_mixed_batch_counts_only_ai_items_per_generation(user_factory, generation_factory):
    user = user_factory()
    first = generation_factory(user=user, accepted_count=2)
    second = generation_factory(user=user, accepted_count=None)
    items = [
        ManualItem('M1', 'A'),
        AiItem('F1', 'A', first.id),
        ManualItem('M2', 'A'),
        AiItem('S1', 'A', second.id),
        AiItem('F2', 'A', first.id),
    ]

    result = create_flashcards_batch(user, items)

    first.refresh_from_db()
    second.refresh_from_db()
    assert len(result.flashcards) == 5
    assert first.accepted_count == 4
    assert second.accepted_count == 1


def test_foreign_generation_rejects_whole_batch(user_factory, generation_factory):
    user = user_factory()
    own = generation_factory(user=user)
    foreign = generation_factory()
    items = [AiItem('Q1', 'A1', own.id), AiItem('Q2', 'A2', foreign.id), ManualItem('Q3', 'A3')]

    with pytest.raises(errors.ForbiddenError) as excinfo:
        create_flashcards_batch(user, items)

    assert excinfo.value.details == {'unauthorized_generation_ids': [foreign.id]}
    assert Flashcard.objects.count() == 0
    own.refresh_from_db()
    assert own.accepted_count is None


def test_missing_generation_reports_ids(user_factory, generation_factory):
    user = user_factory()
    own = generation_factory(user=user)
    missing_id = own.id + 1000

    with pytest.raises(errors.NotFoundError) as excinfo:
        create_flashcards_batch(user, [AiItem('Q', 'A', own.id), AiItem('Q', 'A', missing_id)])

    assert excinfo.value.details == {'missing_generation_ids': [missing_id]}
    assert Flashcard.objects.count() == 0


def test_empty_batch_is_a_database_error(user_factory):
    user = user_factory()
    with pytest.raises(errors.DatabaseError) as excinfo:
        create_flashcards_batch(user, [])
    assert excinfo.value.message == 'no records created'


def test_reconciliation_failure_keeps_cards_and_reports_warning(user_factory, generation_factory, monkeypatch):
    user = user_factory()
    broken = generation_factory(user=user, accepted_count=None)
    healthy = generation_factory(user=user, accepted_count=1)
    original = flashcard_service.increment_generation_accepted_count

    def flaky_increment(generation_id, count):
        if generation_id == broken.id:
            raise DjangoDatabaseError('connection reset')
        return original(generation_id, count)

    monkeypatch.setattr(flashcard_service, 'increment_generation_accepted_count', flaky_increment)

    result = create_flashcards_batch(user, [AiItem('Q1', 'A', broken.id), AiItem('Q2', 'A', healthy.id)])

    assert Flashcard.objects.filter(user=user).count() == 2
    assert [warning.generation_id for warning in result.warnings] == [broken.id]
    assert 'connection reset' in result.warnings[0].message
    broken.refresh_from_db()
    healthy.refresh_from_db()
    assert broken.accepted_count is None
    assert healthy.accepted_count == 2


def test_increment_is_atomic_and_treats_null_as_zero(generation_factory):
    generation = generation_factory(accepted_count=None)

    assert flashcard_service.increment_generation_accepted_count(generation.id, 2) == 1
    assert flashcard_service.increment_generation_accepted_count(generation.id, 3) == 1
    assert flashcard_service.increment_generation_accepted_count(generation.id + 1000, 1) == 0

    generation.refresh_from_db()
    assert generation.accepted_count == 5


@pytest.mark.parametrize('generation_id', [None, 0, -3, '7', True])
def test_ai_item_requires_positive_generation_id(generation_id):
    with pytest.raises(errors.ValidationError):
        AiItem('Q', 'A', generation_id)


def test_item_from_payload_builds_matching_variant():
    manual = item_from_payload({'front': 'Q', 'back': 'A', 'generation_type': 'manual', 'generation_id': None})
    ai = item_from_payload({'front': 'Q', 'back': 'A', 'generation_type': 'ai', 'generation_id': 4})

    assert manual == ManualItem('Q', 'A')
    assert ai == AiItem('Q', 'A', 4)


@pytest.mark.parametrize(
    'payload',
    [
        {'front': 'Q', 'back': 'A', 'generation_type': 'manual', 'generation_id': 3},
        {'front': 'Q', 'back': 'A', 'generation_type': 'ai', 'generation_id': None},
        {'front': 'Q', 'back': 'A', 'generation_type': 'imported'},
    ],
)
def test_item_from_payload_rejects_inconsistent_shapes(payload):
    with pytest.raises(errors.ValidationError):
        item_from_payload(payload)


def test_manual_card_cannot_reference_generation_in_store(user_factory, generation_factory):
    user = user_factory()
    generation = generation_factory(user=user)

    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Flashcard.objects.create(
                user=user,
                front='Q',
                back='A',
                generation_type=Flashcard.TYPE_MANUAL,
                generation=generation,
            )


def test_deleting_generation_keeps_its_flashcards(user_factory, generation_factory):
    user = user_factory()
    generation = generation_factory(user=user)
    result = create_flashcards_batch(user, [AiItem('Q', 'A', generation.id)])

    Generation.objects.filter(id=generation.id).delete()

    card = Flashcard.objects.get(id=result.flashcards[0].id)
    assert card.generation_id is None
    assert card.generation_type == Flashcard.TYPE_AI


def test_unexpected_reconciliation_error_becomes_warning(user_factory, generation_factory, monkeypatch):
    user = user_factory()
    generation = generation_factory(user=user, accepted_count=None)

    def exploding_increment(generation_id, count):
        raise RuntimeError('counter service unavailable')

    monkeypatch.setattr(flashcard_service, 'increment_generation_accepted_count', exploding_increment)

    result = create_flashcards_batch(user, [AiItem('Q1', 'A', generation.id), ManualItem('Q2', 'A')])

    assert len(result.flashcards) == 2
    assert Flashcard.objects.filter(user=user).count() == 2
    assert [warning.generation_id for warning in result.warnings] == [generation.id]
    assert 'counter service unavailable' in result.warnings[0].message
