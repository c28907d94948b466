from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.models import User
from core.models import Flashcard
from core.services.flashcards import AiItem, ManualItem, create_flashcards_batch
from core.services.generations import MockFlashcardGenerator, generate_from_text


class Command(BaseCommand):
    help = 'Create a demo user with manual flashcards and one accepted AI generation.'

    def handle(self, *args, **options):
        user, created = User.objects.get_or_create(
            email='demo@example.com',
            defaults={'created_at': timezone.now()},
        )
        if created or not user.password:
            user.set_password('demo1234')
            user.is_staff = True
            user.save()
            self.stdout.write(self.style.SUCCESS('Created demo user demo@example.com / demo1234'))
        else:
            self.stdout.write('Demo user already exists.')

        if Flashcard.objects.for_user(user).exists():
            self.stdout.write('Demo flashcards already exist, skipping.')
            return

        samples = [
            ManualItem('What is the capital of France?', 'Paris'),
            ManualItem('What is 3 * 7?', '21'),
        ]
        manual = create_flashcards_batch(user, samples)

        source_text = 'Spaced repetition schedules reviews at growing intervals. ' * 100
        result = generate_from_text(user, source_text, generator=MockFlashcardGenerator())
        accepted = [
            AiItem(proposal.front, proposal.back, result.generation.id)
            for proposal in result.proposals[:3]
        ]
        ai = create_flashcards_batch(user, accepted)
        for warning in ai.warnings:
            self.stderr.write(f'Generation {warning.generation_id}: {warning.message}')

        self.stdout.write(
            self.style.SUCCESS(
                f'Seeded {len(manual.flashcards)} manual and {len(ai.flashcards)} AI flashcards '
                f'(generation {result.generation.id}, {result.generation.generated_count} proposals).'
            )
        )
