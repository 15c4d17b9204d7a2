# reading/reporting.py
"""
Statistics derived from a reader's history and subjects.

Everything here is a pure function of its arguments: no queries, no clock.
Records need ``date`` (tz-aware) and ``duration_minutes``; subjects need
``id``, ``name`` and ``chapters``.
"""
from __future__ import annotations

import datetime as dt
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import pytz
from django.conf import settings
from django.utils import timezone

WEEK_DAYS = 7
DAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def resolve_tz(tz: Optional[str | dt.tzinfo] = None) -> dt.tzinfo:
    """Accept a pytz name or tzinfo; None means the configured reporting timezone."""
    if tz is None:
        tz = settings.READTRACK_TIME_ZONE
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def _aware(d: dt.datetime) -> dt.datetime:
    if timezone.is_naive(d):
        d = timezone.make_aware(d, dt.timezone.utc)
    return d


def _local_date(d: dt.datetime, tz: dt.tzinfo) -> dt.date:
    return _aware(d).astimezone(tz).date()


def _local_midnight(day: dt.date, tz: dt.tzinfo) -> dt.datetime:
    naive = dt.datetime.combine(day, dt.time.min)
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def week_start(day: dt.date) -> dt.date:
    """Most recent Sunday on or before ``day``."""
    return day - dt.timedelta(days=(day.weekday() + 1) % 7)


def _sum_minutes(records: Iterable) -> float:
    return round(sum(float(r.duration_minutes) for r in records), 2)


def chart_data(history: Iterable, now: dt.datetime, tz: dt.tzinfo) -> List[Dict]:
    """Minutes per local calendar day for the 7 days ending today, oldest first."""
    today = _local_date(now, tz)
    days = [today - dt.timedelta(days=i) for i in range(WEEK_DAYS - 1, -1, -1)]
    totals = {d: 0.0 for d in days}
    for record in history:
        key = _local_date(record.date, tz)
        if key in totals:
            totals[key] += float(record.duration_minutes)
    return [
        {"date": d.isoformat(), "day": DAY_LABELS[d.weekday()], "minutes": round(totals[d], 2)}
        for d in days
    ]


def compute_stats(history: Iterable, subjects: Iterable, now: dt.datetime, tz=None) -> Dict:
    """
    Totals for the dashboard:
      - total_minutes: all records
      - today_minutes: records on/after local midnight of ``now``
      - weekly_minutes: records on/after the latest Sunday, local midnight
      - chart_data: see chart_data()
      - chapters_read: completed chapters across all subjects
    """
    tzinfo = resolve_tz(tz)
    history = list(history)
    today = _local_date(now, tzinfo)
    midnight = _local_midnight(today, tzinfo)
    week_begin = _local_midnight(week_start(today), tzinfo)

    return {
        "total_minutes": _sum_minutes(history),
        "today_minutes": _sum_minutes(r for r in history if _aware(r.date) >= midnight),
        "weekly_minutes": _sum_minutes(r for r in history if _aware(r.date) >= week_begin),
        "chart_data": chart_data(history, now, tzinfo),
        "chapters_read": sum(
            1 for s in subjects for c in (s.chapters or []) if c.get("is_completed")
        ),
    }


def goal_progress(current: float, goal: float) -> Dict:
    percent = min(100.0, current / goal * 100) if goal > 0 else 0.0
    return {
        "goal": goal,
        "current": current,
        "percent": round(percent, 2),
        "remaining": round(max(0.0, goal - current), 2),
        "met": percent >= 100,
    }


def chapters_in_progress(subjects: Iterable, limit: int = 5) -> List[Dict]:
    """Unfinished chapters in subject order, at most ``limit`` of them."""
    out: List[Dict] = []
    for subject in subjects:
        for chapter in subject.chapters or []:
            if chapter.get("is_completed"):
                continue
            total = chapter.get("total") or 0
            read = chapter.get("read") or 0
            out.append({
                "subject_id": subject.id,
                "subject_name": subject.name,
                "chapter_id": chapter.get("id"),
                "chapter_name": chapter.get("name"),
                "read": read,
                "total": total,
                "percent": round(read / total * 100) if total > 0 else None,
            })
            if len(out) >= limit:
                return out
    return out


def admin_report(history: Iterable, now: dt.datetime, tz=None, recent: int = 10) -> Dict:
    """
    Aggregate view over the given history. Callers pass one reader's own
    records; the per-reader breakdown groups by the records' user_id.
    """
    tzinfo = resolve_tz(tz)
    history = sorted(history, key=lambda r: _aware(r.date), reverse=True)
    per_reader: Dict[str, float] = defaultdict(float)
    for record in history:
        per_reader[record.user_id] += float(record.duration_minutes)
    readers = [
        {"user_id": uid, "minutes": round(minutes, 2)}
        for uid, minutes in sorted(per_reader.items(), key=lambda kv: (-kv[1], kv[0]))
    ]
    return {
        "total_minutes": _sum_minutes(history),
        "active_readers": len(readers),
        "readers": readers,
        "chart_data": chart_data(history, now, tzinfo),
        "recent": history[:recent],
    }


def plan_reading(subject, days: int) -> Dict:
    """Spread a subject's chapters over ``days`` days, in order."""
    if days < 1:
        raise ValueError("days must be >= 1")
    names = [c.get("name") for c in (subject.chapters or [])]
    per_day = math.ceil(len(names) / days) if names else 0
    schedule = []
    if per_day:
        for i in range(0, len(names), per_day):
            schedule.append({"day": len(schedule) + 1, "chapters": names[i:i + per_day]})
    return {
        "subject_id": subject.id,
        "total_chapters": len(names),
        "days": days,
        "chapters_per_day": per_day,
        "schedule": schedule,
    }
