from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from django.db import DatabaseError as DjangoDatabaseError
from django.db import transaction
from django.utils import timezone

from .. import errors
from ..models import Flashcard
from ..scheduling import QUALITY_RANGE, SchedulerConfig, compute_next_state, get_scheduler_config

logger = logging.getLogger(__name__)

QUALITY_LABELS = {
    0: 'Blackout',
    1: 'Wrong, familiar',
    2: 'Wrong, easy to recall',
    3: 'Hard',
    4: 'Good',
    5: 'Perfect',
}

SCHEDULING_FIELDS = ['interval', 'repetition', 'ease_factor', 'due_date', 'updated_at']


def get_due_flashcards(user, reference_time: Optional[datetime] = None):
    reference_time = reference_time or timezone.now()
    return (
        Flashcard.objects.for_user(user)
        .filter(due_date__lte=reference_time)
        .order_by('due_date', 'created_at')
    )


def count_due_flashcards(user, reference_time: Optional[datetime] = None) -> int:
    return get_due_flashcards(user, reference_time).count()


@transaction.atomic
def submit_review(
    user,
    flashcard_id,
    quality: int,
    *,
    now: Optional[datetime] = None,
    config: Optional[SchedulerConfig] = None,
) -> Flashcard:
    """Grade the caller's card and persist its new scheduling state; content is left untouched."""
    card = Flashcard.objects.select_for_update().for_user(user).filter(id=flashcard_id).first()
    if card is None:
        raise errors.NotFoundError(
            'Flashcard not found or you do not have permission to review it',
            details={'flashcard_id': str(flashcard_id)},
        )

    state = compute_next_state(card, quality, now=now, config=config)
    card.interval = state.interval
    card.repetition = state.repetition
    card.ease_factor = state.ease_factor
    card.due_date = state.due_date
    try:
        card.save(update_fields=SCHEDULING_FIELDS)
    except DjangoDatabaseError as exc:
        raise errors.DatabaseError('Failed to update flashcard after review') from exc

    logger.debug('Reviewed flashcard %s with quality %s: next due %s', card.id, quality, card.due_date)
    return card


def build_quality_previews(card: Flashcard, *, now=None, config: Optional[SchedulerConfig] = None) -> dict[int, dict]:
    config = config or get_scheduler_config()
    now = now or timezone.now()
    previews: dict[int, dict] = {}
    for quality in QUALITY_RANGE:
        state = compute_next_state(card, quality, now=now, config=config)
        previews[quality] = {
            'label': QUALITY_LABELS[quality],
            'interval': state.interval,
            'due_date': state.due_date.isoformat(),
            'humanized': _humanize_due(now, state.due_date),
        }
    return previews


def _humanize_due(now, due_date: datetime) -> str:
    days = (due_date - now).days
    if days < 1:
        return 'Today'
    if days < 14:
        return f"{days} d"
    if days < 60:
        return f"{days // 7} w"
    if days < 730:
        return f"{days // 30} mo"
    return f"{days // 365} y"
