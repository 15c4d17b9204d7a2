# reading/models.py
import uuid

from django.db import models
from django.utils import timezone


def new_document_id() -> str:
    """Store-assigned identifier for subjects, chapters and history records."""
    return uuid.uuid4().hex


class ImmutableRecordError(Exception):
    """Raised when something tries to change or remove a history record."""


class Subject(models.Model):
    id = models.CharField(primary_key=True, max_length=32, default=new_document_id, editable=False)
    user_id = models.CharField(max_length=128, db_index=True)      # Owner identity
    name = models.CharField(max_length=200)
    chapters = models.JSONField(default=list)                       # [{id, name, total, read, is_completed}]
    version = models.PositiveIntegerField(default=0)                # Bumped on every chapter-list write
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["user_id", "created_at"], name="idx_subject_user_created"),
        ]

    def __str__(self):
        return self.name


class HistoryRecord(models.Model):
    id = models.CharField(primary_key=True, max_length=32, default=new_document_id, editable=False)
    user_id = models.CharField(max_length=128, db_index=True)
    subject_id = models.CharField(max_length=32)                    # Not a FK: the record outlives edits
    subject_name = models.CharField(max_length=200)                 # Snapshot at recording time
    chapter_id = models.CharField(max_length=32, blank=True, default="")
    chapter_name = models.CharField(max_length=200)
    duration_minutes = models.FloatField()                          # Two-decimal precision
    date = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-date", "-id"]
        indexes = [
            models.Index(fields=["user_id", "date"], name="idx_history_user_date"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordError(f"history record {self.pk} is append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError(f"history record {self.pk} is append-only")


class GoalSettings(models.Model):
    user_id = models.CharField(primary_key=True, max_length=128)
    daily_goal_minutes = models.PositiveIntegerField(null=True, blank=True)
    weekly_goal_minutes = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)
