from django.urls import path

from . import views

app_name = 'api'

urlpatterns = [
    path('flashcards/', views.flashcards_collection, name='flashcards-collection'),
    path('flashcards/batch', views.flashcards_batch, name='flashcards-batch'),
    path('flashcards/<uuid:flashcard_id>', views.flashcard_detail, name='flashcard-detail'),
    path('flashcards/<uuid:flashcard_id>/review', views.flashcard_review, name='flashcard-review'),
    path('flashcards/<uuid:flashcard_id>/previews', views.flashcard_previews, name='flashcard-previews'),
    path('study/due', views.study_due, name='study-due'),
    path('study/due/count', views.study_due_count, name='study-due-count'),
    path('generations/', views.generations_collection, name='generations-collection'),
    path('generations/<int:generation_id>', views.generation_detail, name='generation-detail'),
]
