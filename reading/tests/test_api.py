# reading/tests/test_api.py
import pytest
from rest_framework.test import APIClient

from reading.models import HistoryRecord
from reading.recorder import SessionRecorder

from .conftest import utc


def _make_subject(c, name="Mathematics", chapters=None):
    r = c.post("/api/subjects", {"name": name, "chapters": chapters or []}, format="json")
    assert r.status_code == 201
    return r.json()


@pytest.mark.django_db
def test_anonymous_sign_in_issues_token():
    c = APIClient()
    r = c.post("/api/auth/session", {}, format="json")
    assert r.status_code == 201
    data = r.json()
    assert data["uid"]
    assert data["token"]
    assert data["is_admin"] is False


@pytest.mark.django_db
def test_rejected_custom_token_is_401():
    r = APIClient().post("/api/auth/session", {"custom_token": "not-a-token"}, format="json")
    assert r.status_code == 401


@pytest.mark.django_db
def test_requests_without_token_are_401():
    assert APIClient().get("/api/subjects").status_code == 401


@pytest.mark.django_db
def test_tampered_token_is_401(reader):
    c, data = reader
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}x")
    assert c.get("/api/subjects").status_code == 401


@pytest.mark.django_db
def test_create_subject_from_list_and_from_text(reader):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra", "total": 100}, {"name": "Geometry"}])
    assert subject["name"] == "Mathematics"
    assert [ch["name"] for ch in subject["chapters"]] == ["Algebra", "Geometry"]
    assert subject["chapters"][0]["total"] == 100
    assert subject["chapters"][1]["total"] == 0
    assert all(ch["read"] == 0 and ch["is_completed"] is False and ch["id"] for ch in subject["chapters"])

    r = c.post("/api/subjects", {"name": "Physics", "chapters": "Optics, Mechanics, "}, format="json")
    assert r.status_code == 201
    assert [ch["name"] for ch in r.json()["chapters"]] == ["Optics", "Mechanics"]

    listing = c.get("/api/subjects").json()
    assert [s["name"] for s in listing] == ["Mathematics", "Physics"]


@pytest.mark.django_db
def test_subject_validation(reader):
    c, _ = reader
    assert c.post("/api/subjects", {"name": "   "}, format="json").status_code == 400
    dup = c.post("/api/subjects", {"name": "Maths", "chapters": [{"name": "A"}, {"name": "A"}]}, format="json")
    assert dup.status_code == 400
    assert c.post("/api/subjects", {"name": "Maths", "chapters": 5}, format="json").status_code == 400


@pytest.mark.django_db
def test_subjects_are_scoped_to_their_reader(reader):
    c, _ = reader
    _make_subject(c)
    other = APIClient()
    token = other.post("/api/auth/session", {}, format="json").json()["token"]
    other.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    assert other.get("/api/subjects").json() == []


@pytest.mark.django_db
def test_record_session_updates_history_and_progress(reader):
    c, data = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra", "total": 60}])

    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "duration_seconds": 1800},
        format="json",
    )
    assert r.status_code == 201
    assert r.json() == {"recorded": True, "duration_minutes": 30}

    history = c.get("/api/history").json()
    assert len(history) == 1
    assert history[0]["subject_name"] == "Mathematics"
    assert history[0]["chapter_name"] == "Algebra"
    assert history[0]["duration_minutes"] == 30
    assert history[0]["user_id"] == data["uid"]

    c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "chapter_id": subject["chapters"][0]["id"], "duration_seconds": 1800},
        format="json",
    )
    chapter = c.get("/api/subjects").json()[0]["chapters"][0]
    assert chapter["read"] == 60
    assert chapter["is_completed"] is True


@pytest.mark.django_db
def test_sub_second_session_is_not_recorded(reader):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra"}])
    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "duration_seconds": 0.4},
        format="json",
    )
    assert r.status_code == 200
    assert r.json()["recorded"] is False
    assert HistoryRecord.objects.count() == 0


@pytest.mark.django_db
def test_failed_session_echoes_duration_for_retry(reader, monkeypatch):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra"}])
    monkeypatch.setattr(SessionRecorder, "record_reading", lambda self, *a, **k: False)
    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "duration_seconds": 754},
        format="json",
    )
    assert r.status_code == 503
    assert r.json()["recorded"] is False
    assert r.json()["duration_seconds"] == 754


@pytest.mark.django_db
def test_session_requires_a_chapter(reader):
    c, _ = reader
    r = c.post("/api/sessions", {"subject_id": "s1", "duration_seconds": 60}, format="json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_goals_default_then_merge(reader):
    c, _ = reader
    assert c.get("/api/settings/goals").json() == {"daily_goal_minutes": 60, "weekly_goal_minutes": 420}

    r = c.put("/api/settings/goals", {"daily_goal_minutes": 90}, format="json")
    assert r.status_code == 200
    assert r.json() == {"daily_goal_minutes": 90, "weekly_goal_minutes": 420}

    r = c.patch("/api/settings/goals", {"weekly_goal_minutes": 500}, format="json")
    assert r.json() == {"daily_goal_minutes": 90, "weekly_goal_minutes": 500}

    assert c.put("/api/settings/goals", {"daily_goal_minutes": -1}, format="json").status_code == 400


@pytest.mark.django_db
def test_stats_with_goal_progress(reader):
    c, data = reader
    uid = data["uid"]
    subject = _make_subject(c, chapters=[{"name": "Algebra", "total": 100}, {"name": "Geometry", "total": 10}])
    for minutes, when in (
        (30, utc(2025, 10, 29, 10, 0, 0)),
        (15, utc(2025, 10, 27, 9, 0, 0)),
        (45, utc(2025, 10, 24, 8, 0, 0)),
    ):
        HistoryRecord.objects.create(
            user_id=uid, subject_id=subject["id"], subject_name="Mathematics",
            chapter_name="Algebra", duration_minutes=minutes, date=when,
        )

    r = c.get("/api/stats?now=2025-10-29T12:00:00Z&tz=UTC")
    assert r.status_code == 200
    stats = r.json()
    assert stats["total_minutes"] == 90
    assert stats["today_minutes"] == 30
    assert stats["weekly_minutes"] == 45
    assert stats["chapters_read"] == 0
    assert [d["minutes"] for d in stats["chart_data"]] == [0, 45, 0, 0, 15, 0, 30]
    assert stats["goals"]["daily"]["percent"] == 50.0
    assert stats["goals"]["daily"]["remaining"] == 30
    assert stats["goals"]["weekly"]["met"] is False
    assert [ch["chapter_name"] for ch in stats["in_progress"]] == ["Algebra", "Geometry"]


@pytest.mark.django_db
def test_stats_rejects_bad_parameters(reader):
    c, _ = reader
    assert c.get("/api/stats?tz=Mars/Olympus").status_code == 400
    assert c.get("/api/stats?now=yesterday").status_code == 400


@pytest.mark.django_db
def test_plan_for_subject(reader):
    c, _ = reader
    subject = _make_subject(c, chapters="A, B, C, D, E")
    r = c.post(f"/api/subjects/{subject['id']}/plan", {"days": 2}, format="json")
    assert r.status_code == 200
    plan = r.json()
    assert plan["chapters_per_day"] == 3
    assert plan["schedule"][1] == {"day": 2, "chapters": ["D", "E"]}

    assert c.post("/api/subjects/missing/plan", {"days": 2}, format="json").status_code == 404
    assert c.post(f"/api/subjects/{subject['id']}/plan", {"days": 0}, format="json").status_code == 400


@pytest.mark.django_db
def test_admin_report_is_admin_only(reader, admin_reader):
    c, _ = reader
    assert c.get("/api/admin/report").status_code == 403

    admin, data = admin_reader
    assert data["uid"] == "admin-uid"
    assert data["is_admin"] is True
    for minutes in (10, 20):
        HistoryRecord.objects.create(
            user_id="admin-uid", subject_id="s1", subject_name="Mathematics",
            chapter_name="Algebra", duration_minutes=minutes, date=utc(2025, 10, 29, 9, minutes, 0),
        )
    HistoryRecord.objects.create(
        user_id="someone-else", subject_id="s9", subject_name="Other",
        chapter_name="X", duration_minutes=99, date=utc(2025, 10, 29, 9, 0, 0),
    )

    r = admin.get("/api/admin/report?now=2025-10-29T12:00:00Z")
    assert r.status_code == 200
    report = r.json()
    assert report["total_minutes"] == 30
    assert report["active_readers"] == 1
    assert report["readers"] == [{"user_id": "admin-uid", "minutes": 30}]
    assert [rec["duration_minutes"] for rec in report["recent"]] == [20, 10]
    assert report["chart_data"][-1]["minutes"] == 30


@pytest.mark.django_db
def test_session_with_only_a_chapter_id_is_rejected(reader):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra"}])
    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_id": "deadbeef", "duration_seconds": 600},
        format="json",
    )
    assert r.status_code == 400
    assert HistoryRecord.objects.count() == 0


@pytest.mark.django_db
def test_unknown_chapter_id_falls_back_to_the_name(reader):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra"}])
    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "chapter_id": "deadbeef", "duration_seconds": 600},
        format="json",
    )
    assert r.status_code == 201
    record = HistoryRecord.objects.get()
    assert record.chapter_name == "Algebra"
    assert record.chapter_id == subject["chapters"][0]["id"]
    assert c.get("/api/subjects").json()[0]["chapters"][0]["read"] == 10


@pytest.mark.django_db
@pytest.mark.parametrize("seconds", [-30, 0, 0.99])
def test_any_duration_below_one_second_is_not_recorded(reader, seconds):
    c, _ = reader
    subject = _make_subject(c, chapters=[{"name": "Algebra"}])
    r = c.post(
        "/api/sessions",
        {"subject_id": subject["id"], "chapter_name": "Algebra", "duration_seconds": seconds},
        format="json",
    )
    assert r.status_code == 200
    assert r.json()["recorded"] is False
    assert HistoryRecord.objects.count() == 0


@pytest.mark.django_db
def test_expired_session_token_is_401(reader, settings):
    c, _ = reader
    assert c.get("/api/subjects").status_code == 200
    settings.READTRACK_SESSION_MAX_AGE = -1
    assert c.get("/api/subjects").status_code == 401
