# reading/tests/conftest.py
import datetime as dt

import pytest
from rest_framework.test import APIClient

from reading.identity import issue_custom_token
from reading.models import Subject


def utc(*args):
    return dt.datetime(*args, tzinfo=dt.timezone.utc)


@pytest.fixture
def algebra_subject(db):
    return Subject.objects.create(
        id="s1",
        user_id="u-reader",
        name="Mathematics",
        chapters=[
            {"name": "Algebra", "total": 100, "read": 40, "is_completed": False},
            {"name": "Geometry", "total": 0, "read": 0, "is_completed": False},
        ],
    )


def _signed_in(custom_token=None):
    c = APIClient()
    body = {"custom_token": custom_token} if custom_token else {}
    r = c.post("/api/auth/session", body, format="json")
    assert r.status_code == 201
    data = r.json()
    c.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}")
    return c, data


@pytest.fixture
def reader(db):
    """(APIClient, sign-in payload) for a fresh anonymous reader."""
    return _signed_in()


@pytest.fixture
def admin_reader(db):
    return _signed_in(issue_custom_token("admin-uid"))
