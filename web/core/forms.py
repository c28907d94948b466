from __future__ import annotations

from django import forms
from django.conf import settings

from .models import Flashcard
from .services.flashcards import SORT_FIELDS, SORT_ORDERS


class FlashcardContentForm(forms.Form):
    front = forms.CharField(max_length=200, strip=False)
    back = forms.CharField(max_length=500, strip=False)


class ManualFlashcardForm(FlashcardContentForm):
    generation_type = forms.ChoiceField(
        choices=[(Flashcard.TYPE_MANUAL, 'Manual')],
        error_messages={
            'invalid_choice': 'Only manual flashcards are supported. Use the batch endpoint for AI flashcards.',
        },
    )


class BatchItemForm(FlashcardContentForm):
    generation_type = forms.ChoiceField(choices=Flashcard.GENERATION_TYPE_CHOICES)
    generation_id = forms.IntegerField(required=False, min_value=1)

    def clean(self):
        cleaned = super().clean()
        generation_type = cleaned.get('generation_type')
        generation_id = cleaned.get('generation_id')
        if generation_type == Flashcard.TYPE_AI and generation_id is None and 'generation_id' not in self.errors:
            self.add_error('generation_id', "generation_id is required for 'ai' flashcards.")
        if generation_type == Flashcard.TYPE_MANUAL and generation_id is not None:
            self.add_error('generation_id', "generation_id must be null for 'manual' flashcards.")
        return cleaned


def validate_batch_payload(payload) -> tuple[list[dict], dict]:
    """
    Shape-check a ``{"flashcards": [...]}`` body.

    Returns the cleaned items and an error dict keyed by item index; the
    error dict is empty when every item is valid.
    """
    raw_items = payload.get('flashcards') if isinstance(payload, dict) else None
    if not isinstance(raw_items, list):
        return [], {'flashcards': ['flashcards must be a list']}
    max_items = settings.FLASHCARD_BATCH_MAX_ITEMS
    if not raw_items:
        return [], {'flashcards': ['At least one flashcard is required']}
    if len(raw_items) > max_items:
        return [], {'flashcards': [f'Cannot create more than {max_items} flashcards in a single batch']}

    cleaned_items: list[dict] = []
    item_errors: dict[str, dict] = {}
    for index, raw in enumerate(raw_items):
        form = BatchItemForm(raw if isinstance(raw, dict) else {})
        if form.is_valid():
            cleaned_items.append(form.cleaned_data)
        else:
            item_errors[str(index)] = form.errors.get_json_data()
    if item_errors:
        return [], {'flashcards': item_errors}
    return cleaned_items, {}


class ReviewForm(forms.Form):
    quality = forms.IntegerField(min_value=0, max_value=5)


class DueQueryForm(forms.Form):
    date = forms.DateTimeField(required=False)


class PaginationForm(forms.Form):
    page = forms.IntegerField(required=False, min_value=1)
    limit = forms.IntegerField(required=False, min_value=1)

    default_limit = 10

    def clean_page(self):
        return self.cleaned_data.get('page') or 1

    def clean_limit(self):
        limit = self.cleaned_data.get('limit') or self.default_limit
        maximum = settings.PAGINATION_MAX_LIMIT
        if limit > maximum:
            raise forms.ValidationError(f'limit must not exceed {maximum}')
        return limit


class FlashcardListQueryForm(PaginationForm):
    sort = forms.ChoiceField(required=False, choices=[(value, value) for value in SORT_FIELDS])
    order = forms.ChoiceField(required=False, choices=[(value, value) for value in SORT_ORDERS])

    def clean_sort(self):
        return self.cleaned_data.get('sort') or 'created_at'

    def clean_order(self):
        return self.cleaned_data.get('order') or 'desc'


class GenerationForm(forms.Form):
    text = forms.CharField(strip=False)

    def clean_text(self):
        text = self.cleaned_data['text']
        minimum = settings.GENERATION_TEXT_MIN_LENGTH
        maximum = settings.GENERATION_TEXT_MAX_LENGTH
        if len(text) < minimum:
            raise forms.ValidationError(f'Text must be at least {minimum} characters long')
        if len(text) > maximum:
            raise forms.ValidationError(f'Text must not exceed {maximum} characters')
        return text
