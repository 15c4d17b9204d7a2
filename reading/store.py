# reading/store.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from django.db import transaction

from .chapters import new_chapters
from .live import load_goals, notify_changed
from .models import GoalSettings, Subject

logger = logging.getLogger(__name__)


def create_subject(user_id: str, name: str, chapters: Iterable[Dict] = ()) -> Subject:
    """
    Create a subject owned by ``user_id`` with a fresh chapter list.
    Raises ValueError for a blank name or duplicate chapter names;
    database errors propagate to the caller.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("subject name is required")
    chapter_docs = new_chapters(chapters)
    with transaction.atomic():
        subject = Subject.objects.create(user_id=user_id, name=name, chapters=chapter_docs)
        notify_changed(Subject, user_id)
    logger.info("subject %s saved for user %s (%d chapters)", subject.id, user_id, len(chapter_docs))
    return subject


def save_goals(user_id: str, daily: Optional[int] = None, weekly: Optional[int] = None) -> Dict[str, int]:
    """Merge the given goal values into the user's settings; omitted values are kept."""
    for label, value in (("daily", daily), ("weekly", weekly)):
        if value is not None and value < 0:
            raise ValueError(f"{label} goal must be >= 0")
    fields = {}
    if daily is not None:
        fields["daily_goal_minutes"] = daily
    if weekly is not None:
        fields["weekly_goal_minutes"] = weekly
    with transaction.atomic():
        if fields:
            GoalSettings.objects.update_or_create(user_id=user_id, defaults=fields)
        else:
            GoalSettings.objects.get_or_create(user_id=user_id)
        notify_changed(GoalSettings, user_id)
    logger.info("goals saved for user %s: %s", user_id, fields)
    return load_goals(user_id)
