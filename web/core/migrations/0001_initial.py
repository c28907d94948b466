import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Generation',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('generated_count', models.PositiveIntegerField()),
                ('accepted_count', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='generations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'created_at'], name='generation_user_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='Flashcard',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('front', models.CharField(max_length=200)),
                ('back', models.CharField(max_length=500)),
                ('generation_type', models.CharField(choices=[('manual', 'Manual'), ('ai', 'AI')], default='manual', max_length=10)),
                ('interval', models.PositiveIntegerField(default=0)),
                ('repetition', models.PositiveIntegerField(default=0)),
                ('ease_factor', models.FloatField(default=2.5)),
                ('due_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('generation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='flashcards', to='core.generation')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='flashcards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'due_date'], name='flashcard_user_due_idx'),
                    models.Index(fields=['user', 'created_at'], name='flashcard_user_created_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('generation_type', 'manual'), ('generation__isnull', False), _negated=True),
                        name='manual_flashcard_has_no_generation',
                    ),
                ],
            },
        ),
    ]
