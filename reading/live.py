# reading/live.py
"""
Live, user-scoped collections.

Every committed write to a collection sends ``collection_changed``; each
subscriber of that collection (for that user) then receives the full current
snapshot. ``ReaderState`` keeps the latest snapshot of all three collections
and replaces each one wholesale when a new snapshot arrives.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.dispatch import Signal

from .models import GoalSettings, HistoryRecord, Subject

logger = logging.getLogger(__name__)

# Sent with sender=<model class>, user_id=<owner>.
collection_changed = Signal()


def notify_changed(model, user_id: str) -> None:
    """Announce a change to ``model``'s collection for ``user_id`` once the transaction commits."""
    transaction.on_commit(lambda: collection_changed.send(sender=model, user_id=user_id))


def load_subjects(user_id: str) -> List[Subject]:
    return list(Subject.objects.filter(user_id=user_id))


def load_history(user_id: str) -> List[HistoryRecord]:
    return list(HistoryRecord.objects.filter(user_id=user_id))


def load_goals(user_id: str) -> Dict[str, int]:
    """Stored goals merged over the configured defaults."""
    goals = {
        "daily_goal_minutes": settings.READTRACK_DAILY_GOAL,
        "weekly_goal_minutes": settings.READTRACK_WEEKLY_GOAL,
    }
    row = GoalSettings.objects.filter(user_id=user_id).first()
    if row is not None:
        if row.daily_goal_minutes is not None:
            goals["daily_goal_minutes"] = row.daily_goal_minutes
        if row.weekly_goal_minutes is not None:
            goals["weekly_goal_minutes"] = row.weekly_goal_minutes
    return goals


class _Subscription:
    def __init__(self, collection: "LiveCollection", on_snapshot, on_error):
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True

    def changed(self, sender, user_id=None, **kwargs):
        if user_id == self.collection.user_id:
            self.deliver()

    def deliver(self):
        if not self.active:
            return
        try:
            snapshot = self.collection.fetch(self.collection.user_id)
        except DatabaseError as exc:
            logger.error("%s listen error for user %s: %s", self.collection.name, self.collection.user_id, exc)
            self.unsubscribe()
            if self.on_error is not None:
                self.on_error(exc)
            return
        self.on_snapshot(snapshot)

    def unsubscribe(self):
        if self.active:
            self.active = False
            collection_changed.disconnect(self.changed, sender=self.collection.model)


class LiveCollection:
    """One observable collection (subjects, history or settings) for one user."""

    def __init__(self, name: str, model, fetch: Callable, user_id: str):
        self.name = name
        self.model = model
        self.fetch = fetch
        self.user_id = user_id

    def subscribe(self, on_snapshot: Callable, on_error: Optional[Callable] = None) -> Callable[[], None]:
        """
        Deliver the current snapshot now and again after every committed change.
        Returns the unsubscribe callable.
        """
        sub = _Subscription(self, on_snapshot, on_error)
        collection_changed.connect(sub.changed, sender=self.model, weak=False)
        sub.deliver()
        return sub.unsubscribe


class ReaderState:
    """
    Explicit state container for one reader: the latest subjects, history and
    goals. ``start()`` mirrors the live collections; ``refresh()`` loads a
    one-off snapshot without subscribing.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.subjects: List[Subject] = []
        self.history: List[HistoryRecord] = []
        self.goals: Dict[str, int] = {
            "daily_goal_minutes": settings.READTRACK_DAILY_GOAL,
            "weekly_goal_minutes": settings.READTRACK_WEEKLY_GOAL,
        }
        self.feeds = {
            "subjects": LiveCollection("subjects", Subject, load_subjects, user_id),
            "history": LiveCollection("history", HistoryRecord, load_history, user_id),
            "settings": LiveCollection("settings", GoalSettings, load_goals, user_id),
        }
        self._unsubscribers: List[Callable[[], None]] = []

    def _set_subjects(self, snapshot):
        self.subjects = snapshot

    def _set_history(self, snapshot):
        self.history = snapshot

    def _set_goals(self, snapshot):
        self.goals = snapshot

    def start(self) -> "ReaderState":
        if not self._unsubscribers:
            self._unsubscribers = [
                self.feeds["subjects"].subscribe(self._set_subjects),
                self.feeds["history"].subscribe(self._set_history),
                self.feeds["settings"].subscribe(self._set_goals),
            ]
        return self

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def refresh(self) -> "ReaderState":
        self.subjects = load_subjects(self.user_id)
        self.history = load_history(self.user_id)
        self.goals = load_goals(self.user_id)
        return self

    def subject_name(self, subject_id: str) -> Optional[str]:
        for subject in self.subjects:
            if subject.id == subject_id:
                return subject.name
        return None
