# reading/recorder.py
"""
Reading-session commit.

A finished timer session becomes one HistoryRecord plus a read-time increment
on the matching chapter of its subject. Both writes happen inside a single
``transaction.atomic`` block; the subject's chapter list is written with a
compare-and-swap on ``Subject.version``, and a lost race rolls the whole
attempt back and runs it again.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from .chapters import find_chapter, normalize_chapter, with_reading
from .live import ReaderState, load_subjects, notify_changed
from .models import HistoryRecord, Subject

logger = logging.getLogger(__name__)

UNKNOWN_SUBJECT_NAME = "N/A"


class TransactionConflict(Exception):
    """The subject changed between read and write; the attempt must be retried."""


class SessionRecorder:
    """
    Records reading sessions for one reader.

    ``state`` supplies the in-memory subject list used for the denormalized
    subject name. It is not consulted for the chapter update, which always
    reads the subject inside the transaction.
    """

    def __init__(
        self,
        user_id: Optional[str],
        state: Optional[ReaderState] = None,
        *,
        max_attempts: Optional[int] = None,
        clock: Callable = timezone.now,
    ):
        self.user_id = user_id
        if state is None and user_id:
            state = ReaderState(user_id)
            state.subjects = load_subjects(user_id)
        self.state = state
        self.max_attempts = max_attempts or settings.READTRACK_TRANSACTION_ATTEMPTS
        self.clock = clock

    def record_reading(
        self,
        subject_id: str,
        chapter_name: str,
        duration_seconds: float,
        chapter_id: Optional[str] = None,
    ) -> bool:
        """
        Append a history record and advance the chapter in one atomic unit.

        Returns True once committed. Returns False without writing anything
        when no reader is signed in, when the session is shorter than one
        second or names no chapter, or when the transaction fails (the caller
        should keep the elapsed time so the user can retry). A chapter_id that
        matches nothing falls back to matching by name. Not idempotent.
        """
        if not self.user_id:
            logger.warning("record_reading called without an authenticated user")
            return False
        if duration_seconds is None or duration_seconds < 1:
            return False
        if not (chapter_name or "").strip():
            logger.warning("record_reading called without a chapter name for subject %s", subject_id)
            return False

        minutes = round(duration_seconds / 60, 2)
        subject_name = (self.state.subject_name(subject_id) if self.state else None) or UNKNOWN_SUBJECT_NAME

        for attempt in range(1, self.max_attempts + 1):
            try:
                with transaction.atomic():
                    record = self._commit(subject_id, subject_name, chapter_name, chapter_id, minutes)
            except TransactionConflict:
                logger.warning(
                    "subject %s changed during commit (attempt %d/%d), retrying",
                    subject_id, attempt, self.max_attempts,
                )
                continue
            except DatabaseError:
                logger.exception("transaction failed recording %s min on %s/%s", minutes, subject_id, chapter_name)
                return False
            logger.info(
                "recorded %s min on %s/%s for user %s (history %s)",
                minutes, subject_id, chapter_name, self.user_id, record.id,
            )
            return True

        logger.error("giving up on %s/%s after %d conflicting attempts", subject_id, chapter_name, self.max_attempts)
        return False

    def _load_subject(self, subject_id: str) -> Optional[Tuple[int, List[Dict]]]:
        row = (
            Subject.objects.filter(pk=subject_id, user_id=self.user_id)
            .values_list("version", "chapters")
            .first()
        )
        return row

    def _commit(self, subject_id, subject_name, chapter_name, chapter_id, minutes) -> HistoryRecord:
        loaded = self._load_subject(subject_id)
        chapter = None
        if loaded is not None:
            # ids are backfilled here so the record and the write agree on them
            loaded = (loaded[0], [normalize_chapter(c) for c in loaded[1]])
            if chapter_id:
                chapter = find_chapter(loaded[1], chapter_id=chapter_id)
            if chapter is None:
                chapter = find_chapter(loaded[1], name=chapter_name)

        record = HistoryRecord.objects.create(
            user_id=self.user_id,
            subject_id=subject_id,
            subject_name=subject_name,
            chapter_id=(chapter or {}).get("id", ""),
            chapter_name=chapter_name,
            duration_minutes=minutes,
            date=self.clock(),
        )
        notify_changed(HistoryRecord, self.user_id)

        if loaded is None:
            logger.info("subject %s not found for user %s; history recorded without progress", subject_id, self.user_id)
            return record

        version, chapters = loaded
        if chapter is not None:
            updated = with_reading(chapters, minutes, chapter_id=chapter["id"])
        else:
            updated = with_reading(chapters, minutes, name=chapter_name)
        written = Subject.objects.filter(pk=subject_id, user_id=self.user_id, version=version).update(
            chapters=updated, version=F("version") + 1
        )
        if written != 1:
            raise TransactionConflict(subject_id)
        notify_changed(Subject, self.user_id)
        return record
