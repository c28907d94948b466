"""
Flashcard creation, editing and listing.

Batch ingestion validates every referenced generation before anything is
written, inserts all cards in one statement, then credits each generation's
``accepted_count``. The crediting step is best effort: a failure for one
generation is logged and reported back as a :class:`ReconciliationWarning`
while the created cards stay committed.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Union

from django.db import DatabaseError as DjangoDatabaseError
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .. import errors
from ..models import Flashcard, Generation
from ..scheduling import default_state
from .pagination import Page, paginate

logger = logging.getLogger(__name__)

SORT_FIELDS = ('created_at', 'updated_at', 'due_date')
SORT_ORDERS = ('asc', 'desc')


@dataclass(frozen=True)
class ManualItem:
    front: str
    back: str

    generation_type = Flashcard.TYPE_MANUAL
    generation_id = None


@dataclass(frozen=True)
class AiItem:
    front: str
    back: str
    generation_id: int

    generation_type = Flashcard.TYPE_AI

    def __post_init__(self) -> None:
        gid = self.generation_id
        if isinstance(gid, bool) or not isinstance(gid, int) or gid <= 0:
            raise errors.ValidationError(
                "AI flashcards require a positive generation_id",
                details={'generation_id': gid},
            )


FlashcardItem = Union[ManualItem, AiItem]


@dataclass(frozen=True)
class ReconciliationWarning:
    generation_id: int
    message: str

    def as_dict(self) -> dict:
        return {'generation_id': self.generation_id, 'message': self.message}


@dataclass
class BatchResult:
    flashcards: List[Flashcard] = field(default_factory=list)
    warnings: List[ReconciliationWarning] = field(default_factory=list)


def item_from_payload(payload: dict) -> FlashcardItem:
    """Build the item variant matching the ``generation_type``/``generation_id`` wire shape."""
    generation_type = payload.get('generation_type')
    generation_id = payload.get('generation_id')
    front = payload.get('front', '')
    back = payload.get('back', '')
    if generation_type == Flashcard.TYPE_MANUAL:
        if generation_id is not None:
            raise errors.ValidationError(
                "manual flashcards must not reference a generation",
                details={'generation_id': generation_id},
            )
        return ManualItem(front=front, back=back)
    if generation_type == Flashcard.TYPE_AI:
        if generation_id is None:
            raise errors.ValidationError("AI flashcards require a generation_id")
        return AiItem(front=front, back=back, generation_id=generation_id)
    raise errors.ValidationError(
        "generation_type must be either 'ai' or 'manual'",
        details={'generation_type': generation_type},
    )


def _check_generation_ownership(user, generation_ids: set[int]) -> None:
    try:
        rows = list(Generation.objects.filter(id__in=generation_ids).values('id', 'user_id'))
    except DjangoDatabaseError as exc:
        raise errors.DatabaseError('Failed to verify generation records') from exc

    found = {row['id'] for row in rows}
    missing = sorted(generation_ids - found)
    if missing:
        raise errors.NotFoundError(
            'One or more generation records not found',
            details={'missing_generation_ids': missing},
        )

    unauthorized = sorted(row['id'] for row in rows if row['user_id'] != user.pk)
    if unauthorized:
        raise errors.ForbiddenError(
            'Cannot create flashcards for generations that belong to another user',
            details={'unauthorized_generation_ids': unauthorized},
        )


def increment_generation_accepted_count(generation_id: int, count: int) -> int:
    """Atomically add ``count`` to a generation's accepted_count, treating NULL as 0."""
    return Generation.objects.filter(id=generation_id).update(
        accepted_count=Coalesce(F('accepted_count'), Value(0)) + count,
        updated_at=timezone.now(),
    )


def _reconcile_accepted_counts(created: Iterable[Flashcard]) -> List[ReconciliationWarning]:
    counts = Counter(
        card.generation_id
        for card in created
        if card.generation_type == Flashcard.TYPE_AI and card.generation_id is not None
    )
    warnings: List[ReconciliationWarning] = []
    for generation_id, count in counts.items():
        try:
            with transaction.atomic():
                updated = increment_generation_accepted_count(generation_id, count)
        except DjangoDatabaseError as exc:
            logger.warning('Failed to update accepted_count for generation %s: %s', generation_id, exc)
            warnings.append(ReconciliationWarning(generation_id, f'accepted_count update failed: {exc}'))
            continue
        except Exception as exc:
            # Cards are already committed at this point; the batch still succeeds.
            logger.exception('Unexpected error updating accepted_count for generation %s', generation_id)
            warnings.append(ReconciliationWarning(generation_id, f'accepted_count update failed: {exc}'))
            continue
        if not updated:
            logger.warning('Generation %s vanished before accepted_count could be updated', generation_id)
            warnings.append(ReconciliationWarning(generation_id, 'generation no longer exists'))
    return warnings


def create_flashcards_batch(user, items: Iterable[FlashcardItem], *, now: Optional[datetime] = None) -> BatchResult:
    items = list(items)
    for item in items:
        if not isinstance(item, (ManualItem, AiItem)):
            raise errors.ValidationError('unsupported flashcard item', details={'item': repr(item)})

    generation_ids = {item.generation_id for item in items if isinstance(item, AiItem)}
    if generation_ids:
        _check_generation_ownership(user, generation_ids)

    now = now or timezone.now()
    state = default_state(now)
    records = [
        Flashcard(
            user=user,
            front=item.front,
            back=item.back,
            generation_type=item.generation_type,
            generation_id=item.generation_id,
            interval=state.interval,
            repetition=state.repetition,
            ease_factor=state.ease_factor,
            due_date=state.due_date,
            created_at=now,
        )
        for item in items
    ]

    try:
        with transaction.atomic():
            created = Flashcard.objects.bulk_create(records) if records else []
    except DjangoDatabaseError as exc:
        raise errors.DatabaseError('Failed to create flashcards in database') from exc

    if not created:
        raise errors.DatabaseError('no records created', details={'requested': len(items)})

    warnings = _reconcile_accepted_counts(created)
    logger.info(
        'Created %d flashcards for user %s (%d generations referenced, %d reconciliation warnings)',
        len(created),
        user.pk,
        len(generation_ids),
        len(warnings),
    )
    return BatchResult(flashcards=list(created), warnings=warnings)


def create_flashcard(user, item: FlashcardItem, *, now: Optional[datetime] = None) -> Flashcard:
    if not isinstance(item, ManualItem):
        raise errors.ValidationError(
            'Only manual flashcards can be created one at a time; use the batch endpoint for AI flashcards.'
        )
    result = create_flashcards_batch(user, [item], now=now)
    return result.flashcards[0]


def get_flashcard(user, flashcard_id) -> Optional[Flashcard]:
    return Flashcard.objects.for_user(user).filter(id=flashcard_id).first()


def update_flashcard_content(user, flashcard_id, *, front: str, back: str) -> Optional[Flashcard]:
    card = get_flashcard(user, flashcard_id)
    if card is None:
        return None
    card.front = front
    card.back = back
    try:
        card.save(update_fields=['front', 'back', 'updated_at'])
    except DjangoDatabaseError as exc:
        raise errors.DatabaseError('Failed to update flashcard in database') from exc
    return card


def delete_flashcard(user, flashcard_id) -> bool:
    deleted, _ = Flashcard.objects.for_user(user).filter(id=flashcard_id).delete()
    return deleted > 0


def list_flashcards(user, *, page: int = 1, limit: int = 10, sort: str = 'created_at', order: str = 'desc') -> Page:
    if sort not in SORT_FIELDS:
        raise errors.ValidationError(f'sort must be one of {", ".join(SORT_FIELDS)}', details={'sort': sort})
    if order not in SORT_ORDERS:
        raise errors.ValidationError('order must be asc or desc', details={'order': order})
    ordering = sort if order == 'asc' else f'-{sort}'
    queryset = Flashcard.objects.for_user(user).order_by(ordering, 'id')
    return paginate(queryset, page, limit)
