from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from accounts.models import User
from core import errors
from core.forms import (
    DueQueryForm,
    FlashcardContentForm,
    FlashcardListQueryForm,
    GenerationForm,
    ManualFlashcardForm,
    PaginationForm,
    ReviewForm,
    validate_batch_payload,
)
from core.models import Flashcard, Generation
from core.services.flashcards import (
    ManualItem,
    create_flashcard,
    create_flashcards_batch,
    delete_flashcard,
    get_flashcard,
    item_from_payload,
    list_flashcards,
    update_flashcard_content,
)
from core.services.generations import generate_from_text, get_generation, list_generations
from core.services.review import build_quality_previews, count_due_flashcards, get_due_flashcards, submit_review

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    errors.ValidationError.code: 400,
    errors.NotFoundError.code: 404,
    errors.ForbiddenError.code: 403,
    errors.AIServiceError.code: 502,
    errors.DatabaseError.code: 500,
    errors.InternalError.code: 500,
}


def _json_error(code: str, message: str, status: int, details: Optional[dict] = None) -> JsonResponse:
    payload: Dict[str, Any] = {'code': code, 'message': message}
    if details is not None:
        payload['details'] = details
    return JsonResponse({'error': payload}, status=status)


def _validation_error(message: str, details: Optional[dict] = None) -> JsonResponse:
    return _json_error(errors.ValidationError.code, message, 400, details)


def _service_error(exc: errors.ServiceError) -> JsonResponse:
    return JsonResponse({'error': exc.as_dict()}, status=ERROR_STATUS.get(exc.code, 500))


def _unexpected_error(request: HttpRequest, exc: Exception) -> JsonResponse:
    logger.exception('Unexpected error in %s %s', request.method, request.path)
    return _json_error(errors.InternalError.code, 'An unexpected error occurred', 500, {'error': str(exc)})


def _parse_json(request: HttpRequest) -> Dict[str, Any]:
    try:
        if not request.body:
            return {}
        payload = json.loads(request.body.decode('utf-8'))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f'Invalid JSON payload: {exc}')
    if not isinstance(payload, dict):
        raise ValueError('JSON payload must be an object')
    return payload


def _require_user(request: HttpRequest) -> User:
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        raise PermissionError('Authentication required')
    return user  # type: ignore[return-value]


def _unauthorized(exc: PermissionError) -> JsonResponse:
    return _json_error('UNAUTHORIZED', str(exc), 401)


def _flashcard_to_dict(card: Flashcard) -> dict:
    return {
        'id': str(card.id),
        'front': card.front,
        'back': card.back,
        'generation_type': card.generation_type,
        'generation_id': card.generation_id,
        'interval': card.interval,
        'repetition': card.repetition,
        'ease_factor': card.ease_factor,
        'due_date': card.due_date.isoformat(),
        'created_at': card.created_at.isoformat(),
        'updated_at': card.updated_at.isoformat(),
    }


def _study_card_to_dict(card: Flashcard) -> dict:
    return {
        'id': str(card.id),
        'front': card.front,
        'back': card.back,
        'interval': card.interval,
        'repetition': card.repetition,
        'ease_factor': card.ease_factor,
        'due_date': card.due_date.isoformat(),
    }


def _review_to_dict(card: Flashcard) -> dict:
    return {
        'id': str(card.id),
        'interval': card.interval,
        'repetition': card.repetition,
        'ease_factor': card.ease_factor,
        'due_date': card.due_date.isoformat(),
        'updated_at': card.updated_at.isoformat(),
    }


def _generation_to_dict(generation: Generation) -> dict:
    return {
        'id': generation.id,
        'generated_count': generation.generated_count,
        'accepted_count': generation.accepted_count,
        'acceptance_rate': generation.acceptance_rate,
        'created_at': generation.created_at.isoformat(),
        'updated_at': generation.updated_at.isoformat(),
    }


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def flashcards_collection(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)

    if request.method == 'GET':
        form = FlashcardListQueryForm(request.GET)
        if not form.is_valid():
            return _validation_error('Invalid query parameters', form.errors.get_json_data())
        try:
            page = list_flashcards(user, **form.cleaned_data)
        except errors.ServiceError as exc:
            return _service_error(exc)
        return JsonResponse({
            'data': [_flashcard_to_dict(card) for card in page.data],
            'pagination': page.pagination,
        })

    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _validation_error(str(exc))
    form = ManualFlashcardForm(payload)
    if not form.is_valid():
        return _validation_error('Request body validation failed', form.errors.get_json_data())
    try:
        card = create_flashcard(user, ManualItem(front=form.cleaned_data['front'], back=form.cleaned_data['back']))
    except errors.ServiceError as exc:
        return _service_error(exc)
    except Exception as exc:
        return _unexpected_error(request, exc)
    return JsonResponse(_flashcard_to_dict(card), status=201)


@csrf_exempt
@require_http_methods(['POST'])
def flashcards_batch(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _validation_error(str(exc))
    cleaned_items, item_errors = validate_batch_payload(payload)
    if item_errors:
        return _validation_error('Request body validation failed', item_errors)
    try:
        items = [item_from_payload(data) for data in cleaned_items]
        result = create_flashcards_batch(user, items)
    except errors.ServiceError as exc:
        return _service_error(exc)
    except Exception as exc:
        return _unexpected_error(request, exc)
    return JsonResponse(
        {
            'created_count': len(result.flashcards),
            'flashcards': [_flashcard_to_dict(card) for card in result.flashcards],
            'warnings': [warning.as_dict() for warning in result.warnings],
        },
        status=201,
    )


@csrf_exempt
@require_http_methods(['GET', 'PUT', 'DELETE'])
def flashcard_detail(request: HttpRequest, flashcard_id) -> HttpResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)

    if request.method == 'GET':
        card = get_flashcard(user, flashcard_id)
        if card is None:
            return _json_error('NOT_FOUND', 'Flashcard not found or you do not have permission to access it', 404)
        return JsonResponse(_flashcard_to_dict(card))

    if request.method == 'PUT':
        try:
            payload = _parse_json(request)
        except ValueError as exc:
            return _validation_error(str(exc))
        form = FlashcardContentForm(payload)
        if not form.is_valid():
            return _validation_error('Request body validation failed', form.errors.get_json_data())
        try:
            card = update_flashcard_content(user, flashcard_id, **form.cleaned_data)
        except errors.ServiceError as exc:
            return _service_error(exc)
        if card is None:
            return _json_error('NOT_FOUND', 'Flashcard not found or you do not have permission to update it', 404)
        return JsonResponse(_flashcard_to_dict(card))

    if not delete_flashcard(user, flashcard_id):
        return _json_error('NOT_FOUND', 'Flashcard not found or you do not have permission to delete it', 404)
    return HttpResponse(status=204)


@csrf_exempt
@require_http_methods(['POST'])
def flashcard_review(request: HttpRequest, flashcard_id) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _validation_error(str(exc))
    form = ReviewForm(payload)
    if not form.is_valid():
        return _validation_error('quality must be an integer between 0 and 5', form.errors.get_json_data())
    try:
        card = submit_review(user, flashcard_id, form.cleaned_data['quality'])
    except errors.ServiceError as exc:
        return _service_error(exc)
    except Exception as exc:
        return _unexpected_error(request, exc)
    return JsonResponse(_review_to_dict(card))


@require_http_methods(['GET'])
def flashcard_previews(request: HttpRequest, flashcard_id) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    card = get_flashcard(user, flashcard_id)
    if card is None:
        return _json_error('NOT_FOUND', 'Flashcard not found or you do not have permission to access it', 404)
    previews = build_quality_previews(card)
    return JsonResponse({'id': str(card.id), 'previews': {str(quality): data for quality, data in previews.items()}})


@require_http_methods(['GET'])
def study_due(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    form = DueQueryForm(request.GET)
    if not form.is_valid():
        return _validation_error('Date must be a valid ISO 8601 datetime string', form.errors.get_json_data())
    cards = get_due_flashcards(user, form.cleaned_data.get('date'))
    return JsonResponse([_study_card_to_dict(card) for card in cards], safe=False)


@require_http_methods(['GET'])
def study_due_count(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    form = DueQueryForm(request.GET)
    if not form.is_valid():
        return _validation_error('Date must be a valid ISO 8601 datetime string', form.errors.get_json_data())
    return JsonResponse({'due_count': count_due_flashcards(user, form.cleaned_data.get('date'))})


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def generations_collection(request: HttpRequest) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)

    if request.method == 'GET':
        form = PaginationForm(request.GET)
        if not form.is_valid():
            return _validation_error('Invalid query parameters', form.errors.get_json_data())
        page = list_generations(user, **form.cleaned_data)
        return JsonResponse({
            'data': [_generation_to_dict(generation) for generation in page.data],
            'pagination': page.pagination,
        })

    try:
        payload = _parse_json(request)
    except ValueError as exc:
        return _validation_error(str(exc))
    form = GenerationForm(payload)
    if not form.is_valid():
        return _validation_error('Request body validation failed', form.errors.get_json_data())
    try:
        result = generate_from_text(user, form.cleaned_data['text'])
    except errors.ServiceError as exc:
        return _service_error(exc)
    except Exception as exc:
        return _unexpected_error(request, exc)
    return JsonResponse(
        {
            'generation_id': result.generation.id,
            'generated_count': result.generation.generated_count,
            'proposals': [proposal.as_dict() for proposal in result.proposals],
        },
        status=201,
    )


@require_http_methods(['GET'])
def generation_detail(request: HttpRequest, generation_id: int) -> JsonResponse:
    try:
        user = _require_user(request)
    except PermissionError as exc:
        return _unauthorized(exc)
    generation = get_generation(user, generation_id)
    if generation is None:
        return _json_error('NOT_FOUND', 'Generation not found', 404)
    return JsonResponse(_generation_to_dict(generation))
