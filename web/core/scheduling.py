from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .errors import ValidationError

QUALITY_RANGE = range(0, 6)

# Latest due date a card can get; datetime.max minus a day of slack for tz conversion.
MAX_DUE_DATE = datetime(9999, 12, 30, tzinfo=dt_timezone.utc)


@dataclass(frozen=True)
class SchedulerConfig:
    initial_ease: float
    minimum_ease: float
    passing_quality: int
    first_interval_days: int
    second_interval_days: int
    failed_interval_days: int


@dataclass(frozen=True)
class SchedulingState:
    interval: int
    repetition: int
    ease_factor: float
    due_date: datetime


def get_scheduler_config() -> SchedulerConfig:
    cfg = settings.SCHEDULER_DEFAULTS
    return SchedulerConfig(
        initial_ease=cfg.get('initial_ease', 2.5),
        minimum_ease=cfg.get('minimum_ease', 1.3),
        passing_quality=cfg.get('passing_quality', 3),
        first_interval_days=cfg.get('first_interval_days', 1),
        second_interval_days=cfg.get('second_interval_days', 6),
        failed_interval_days=cfg.get('failed_interval_days', 1),
    )


def default_state(now: Optional[datetime] = None, config: Optional[SchedulerConfig] = None) -> SchedulingState:
    """State of a freshly created card: never reviewed and immediately due."""
    config = config or get_scheduler_config()
    now = now or timezone.now()
    return SchedulingState(interval=0, repetition=0, ease_factor=config.initial_ease, due_date=now)


def max_interval_days(now: datetime) -> int:
    return max((MAX_DUE_DATE - now).days, 0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _validate_quality(quality) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int) or quality not in QUALITY_RANGE:
        raise ValidationError(
            'quality must be an integer between 0 and 5',
            details={'quality': quality},
        )
    return quality


def next_ease_factor(ease_factor: float, quality: int, config: Optional[SchedulerConfig] = None) -> float:
    config = config or get_scheduler_config()
    miss = 5 - quality
    updated = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    return max(updated, config.minimum_ease)


def compute_next_state(
    current,
    quality: int,
    now: Optional[datetime] = None,
    config: Optional[SchedulerConfig] = None,
) -> SchedulingState:
    """
    Apply one SM-2 review to ``current`` and return the resulting state.

    ``current`` only needs ``interval``, ``repetition`` and ``ease_factor``
    attributes, so both a :class:`SchedulingState` and a ``Flashcard`` row
    work. The ease factor is updated for every quality, the interval of a
    mature card grows from the previous interval times the *new* ease.
    """
    quality = _validate_quality(quality)
    config = config or get_scheduler_config()
    now = now or timezone.now()

    ease_factor = next_ease_factor(current.ease_factor, quality, config)

    if quality < config.passing_quality:
        repetition = 0
        interval = config.failed_interval_days
    else:
        repetition = current.repetition + 1
        if repetition == 1:
            interval = config.first_interval_days
        elif repetition == 2:
            interval = config.second_interval_days
        else:
            interval = _round_half_up(current.interval * ease_factor)

    # Keep due_date representable; due_date - now still equals interval days.
    interval = min(interval, max_interval_days(now))

    return SchedulingState(
        interval=interval,
        repetition=repetition,
        ease_factor=ease_factor,
        due_date=now + timedelta(days=interval),
    )


def is_due(card, reference_time: Optional[datetime] = None) -> bool:
    reference_time = reference_time or timezone.now()
    return card.due_date <= reference_time
