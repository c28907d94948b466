from django.contrib import admin

from .models import Flashcard, Generation


class FlashcardInline(admin.TabularInline):
    model = Flashcard
    extra = 0
    fields = ('front', 'back', 'due_date')
    show_change_link = True


@admin.register(Generation)
class GenerationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'generated_count', 'accepted_count', 'created_at', 'updated_at')
    list_filter = ('user',)
    inlines = [FlashcardInline]


@admin.register(Flashcard)
class FlashcardAdmin(admin.ModelAdmin):
    list_display = (
        'id',
        'user',
        'generation_type',
        'generation',
        'interval',
        'repetition',
        'ease_factor',
        'due_date',
        'created_at',
    )
    search_fields = ('front', 'back')
    list_filter = ('user', 'generation_type')
