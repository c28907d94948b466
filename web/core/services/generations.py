"""
AI generation records.

The text-to-proposals step is an opaque collaborator: any object with a
``generate(text)`` method returning :class:`Proposal` items. The class used
in production is chosen with ``settings.FLASHCARD_GENERATOR``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from django.conf import settings
from django.db import DatabaseError as DjangoDatabaseError
from django.utils.module_loading import import_string

from .. import errors
from ..models import Generation
from .pagination import Page, paginate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Proposal:
    front: str
    back: str

    def as_dict(self) -> dict[str, str]:
        return {'front': self.front, 'back': self.back}


class FlashcardGenerator(Protocol):
    def generate(self, text: str) -> List[Proposal]:
        ...


@dataclass
class GenerationResult:
    generation: Generation
    proposals: List[Proposal] = field(default_factory=list)


SAMPLE_PROPOSALS = [
    Proposal(
        'What is the main benefit of spaced repetition?',
        'Reviewing at increasing intervals improves long-term retention.',
    ),
    Proposal(
        'What is the SM-2 algorithm?',
        'A spaced repetition algorithm that computes review intervals from recall quality.',
    ),
    Proposal(
        "What does the ease factor represent?",
        'A per-card multiplier controlling how quickly intervals grow after successful recalls.',
    ),
    Proposal(
        'What is a flashcard generation?',
        'One AI session that creates several flashcard proposals from input text.',
    ),
    Proposal(
        "What is the difference between 'manual' and 'ai' flashcards?",
        'Manual cards are written by the user, AI cards are accepted proposals from a generation.',
    ),
    Proposal(
        'What is the due date of a flashcard?',
        'The moment after which the card is eligible to be reviewed again.',
    ),
    Proposal(
        'What happens to a card rated below 3?',
        'Its repetition count resets and it is shown again the next day.',
    ),
    Proposal(
        'What is the minimum ease factor?',
        '1.3; the ease factor is never lowered below it.',
    ),
    Proposal(
        'What interval follows the second successful review?',
        'Six days.',
    ),
    Proposal(
        'What is the acceptance rate of a generation?',
        'The share of its proposals that were saved as flashcards.',
    ),
]


class MockFlashcardGenerator:
    """Returns canned proposals; one card per 1000 characters of input, between 5 and 10."""

    min_cards = 5
    max_cards = 10

    def generate(self, text: str) -> List[Proposal]:
        count = min(self.max_cards, max(self.min_cards, len(text) // 1000))
        return list(SAMPLE_PROPOSALS[:count])


def get_generator() -> FlashcardGenerator:
    generator_class = import_string(settings.FLASHCARD_GENERATOR)
    return generator_class()


def generate_from_text(user, text: str, *, generator: Optional[FlashcardGenerator] = None) -> GenerationResult:
    generator = generator or get_generator()
    try:
        proposals = list(generator.generate(text))
    except errors.ServiceError:
        raise
    except Exception as exc:
        logger.exception('Flashcard generator %s failed', type(generator).__name__)
        raise errors.AIServiceError('Failed to generate flashcards from AI service') from exc

    if not proposals:
        raise errors.AIServiceError('AI service returned no flashcard proposals', details={'proposals': []})

    try:
        generation = Generation.objects.create(
            user=user,
            generated_count=len(proposals),
            accepted_count=None,
        )
    except DjangoDatabaseError as exc:
        raise errors.DatabaseError('Failed to create generation record in database') from exc

    logger.info('Generation %s produced %d proposals for user %s', generation.id, len(proposals), user.pk)
    return GenerationResult(generation=generation, proposals=proposals)


def get_generation(user, generation_id) -> Optional[Generation]:
    return Generation.objects.for_user(user).filter(id=generation_id).first()


def list_generations(user, *, page: int = 1, limit: int = 10) -> Page:
    queryset = Generation.objects.for_user(user).order_by('-created_at', '-id')
    return paginate(queryset, page, limit)
