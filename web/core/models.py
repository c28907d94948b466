from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class UserScopedQuerySet(models.QuerySet):
    def for_user(self, user: settings.AUTH_USER_MODEL) -> "UserScopedQuerySet":
        return self.filter(user=user)


class Generation(models.Model):
    id = models.BigAutoField(primary_key=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='generations')
    generated_count = models.PositiveIntegerField()
    accepted_count = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['user', 'created_at'], name='generation_user_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Generation {self.id} ({self.accepted_count or 0}/{self.generated_count})"

    @property
    def acceptance_rate(self) -> float:
        if self.accepted_count is None or self.generated_count <= 0:
            return 0.0
        return self.accepted_count / self.generated_count


class Flashcard(models.Model):
    TYPE_MANUAL = 'manual'
    TYPE_AI = 'ai'
    GENERATION_TYPE_CHOICES = [
        (TYPE_MANUAL, 'Manual'),
        (TYPE_AI, 'AI'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='flashcards')
    front = models.CharField(max_length=200)
    back = models.CharField(max_length=500)
    generation_type = models.CharField(max_length=10, choices=GENERATION_TYPE_CHOICES, default=TYPE_MANUAL)
    generation = models.ForeignKey(
        Generation,
        on_delete=models.SET_NULL,
        related_name='flashcards',
        null=True,
        blank=True,
    )
    interval = models.PositiveIntegerField(default=0)
    repetition = models.PositiveIntegerField(default=0)
    ease_factor = models.FloatField(default=2.5)
    due_date = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserScopedQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=['user', 'due_date'], name='flashcard_user_due_idx'),
            models.Index(fields=['user', 'created_at'], name='flashcard_user_created_idx'),
        ]
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(generation_type='manual', generation__isnull=False),
                name='manual_flashcard_has_no_generation',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_generation_type_display()}: {self.front[:40]}"
