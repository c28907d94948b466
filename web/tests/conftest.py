import pytest
from django.test import Client

from .factories import FlashcardFactory, GenerationFactory, UserFactory


@pytest.fixture
def user_factory():
    return UserFactory


@pytest.fixture
def generation_factory():
    return GenerationFactory


@pytest.fixture
def flashcard_factory():
    return FlashcardFactory


@pytest.fixture
def api_client():
    return Client()
