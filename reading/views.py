# reading/views.py
from __future__ import annotations

import datetime as dt
import logging

import pytz
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .identity import IsAdminReader, issue_token, sign_in
from .live import ReaderState, load_goals, load_history, load_subjects
from .models import Subject
from .recorder import SessionRecorder
from .reporting import admin_report, chapters_in_progress, compute_stats, goal_progress, plan_reading
from .serializers import (
    GoalSettingsSerializer,
    HistoryRecordSerializer,
    PlanRequestSerializer,
    ReadingSessionSerializer,
    SubjectCreateSerializer,
    SubjectSerializer,
)
from .store import create_subject, save_goals

logger = logging.getLogger(__name__)


def _to_aware(dt_str: str | None) -> dt.datetime:
    """Parse an ISO string into a tz-aware (UTC) datetime; None means now."""
    if not dt_str:
        return timezone.now()
    # Tolerate a space where '+' should be (query string not URL-encoded).
    if "T" in dt_str and " " in dt_str:
        dt_str = dt_str.replace(" ", "+", 1)
    d = parse_datetime(dt_str)
    if d is None:
        raise ValueError("now must be ISO-8601")
    if timezone.is_naive(d):
        d = timezone.make_aware(d, dt.timezone.utc)
    return d.astimezone(dt.timezone.utc)


def _report_params(request):
    """(now, tzname) from the query string, or raise ValueError."""
    now = _to_aware(request.query_params.get("now"))
    tzname = request.query_params.get("tz") or settings.READTRACK_TIME_ZONE
    try:
        pytz.timezone(tzname)
    except pytz.UnknownTimeZoneError:
        raise ValueError("invalid tz.")
    return now, tzname


class SignInView(APIView):
    """POST /api/auth/session: anonymous sign in, or with {"custom_token": "..."}."""
    permission_classes = [AllowAny]

    def post(self, request):
        identity = sign_in((request.data or {}).get("custom_token"))
        return Response({
            "uid": identity.uid,
            "token": issue_token(identity.uid),
            "is_admin": identity.is_admin,
        }, status=status.HTTP_201_CREATED)


class SubjectListView(APIView):
    """GET/POST /api/subjects"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        subjects = load_subjects(request.user.uid)
        return Response(SubjectSerializer(subjects, many=True).data)

    def post(self, request):
        ser = SubjectCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            subject = create_subject(request.user.uid, ser.validated_data["name"], ser.validated_data["chapters"])
        except ValueError as e:
            return Response({"detail": str(e)}, status=400)
        except DatabaseError:
            logger.exception("error adding subject for user %s", request.user.uid)
            return Response({"detail": "Could not save subject."}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(SubjectSerializer(subject).data, status=status.HTTP_201_CREATED)


class SubjectPlanView(APIView):
    """POST /api/subjects/{subject_id}/plan  body: {"days": N}. Nothing is stored."""
    permission_classes = [IsAuthenticated]

    def post(self, request, subject_id: str):
        ser = PlanRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        subject = Subject.objects.filter(pk=subject_id, user_id=request.user.uid).first()
        if subject is None:
            return Response({"detail": "subject not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(plan_reading(subject, ser.validated_data["days"]))


class HistoryListView(APIView):
    """GET /api/history (newest first)."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(HistoryRecordSerializer(load_history(request.user.uid), many=True).data)


class ReadingSessionView(APIView):
    """
    POST /api/sessions
    201 when recorded; 200 with recorded=false for sessions under a second;
    503 when the commit failed, echoing duration_seconds so the client keeps it.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = ReadingSessionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        seconds = data["duration_seconds"]
        if seconds < 1:
            return Response({"recorded": False, "detail": "session shorter than one second."}, status=200)

        state = ReaderState(request.user.uid)
        state.subjects = load_subjects(request.user.uid)
        recorder = SessionRecorder(request.user.uid, state)
        ok = recorder.record_reading(
            data["subject_id"], data["chapter_name"], seconds, chapter_id=data["chapter_id"] or None
        )
        if not ok:
            return Response(
                {"recorded": False, "duration_seconds": seconds, "detail": "Could not save the session; try again."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response({"recorded": True, "duration_minutes": round(seconds / 60, 2)}, status=status.HTTP_201_CREATED)


class GoalSettingsView(APIView):
    """GET/PUT/PATCH /api/settings/goals (PUT and PATCH both merge)."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(load_goals(request.user.uid))

    def put(self, request):
        ser = GoalSettingsSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            goals = save_goals(
                request.user.uid,
                daily=ser.validated_data.get("daily_goal_minutes"),
                weekly=ser.validated_data.get("weekly_goal_minutes"),
            )
        except DatabaseError:
            logger.exception("error setting goals for user %s", request.user.uid)
            return Response({"detail": "Could not save goals."}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(goals)

    patch = put


class StatsView(APIView):
    """
    GET /api/stats?now=ISO&tz=Asia/Dhaka
    Dashboard numbers, goal progress and the chapters still in progress.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            now, tzname = _report_params(request)
        except ValueError as e:
            return Response({"detail": str(e)}, status=400)

        state = ReaderState(request.user.uid).refresh()
        stats = compute_stats(state.history, state.subjects, now, tzname)
        return Response({
            **stats,
            "tz": tzname,
            "goals": {
                "daily": goal_progress(stats["today_minutes"], state.goals["daily_goal_minutes"]),
                "weekly": goal_progress(stats["weekly_minutes"], state.goals["weekly_goal_minutes"]),
            },
            "in_progress": chapters_in_progress(state.subjects),
        })


class AdminReportView(APIView):
    """
    GET /api/admin/report?now=ISO&tz=...
    Aggregates the admin's own history only.
    """
    permission_classes = [IsAuthenticated, IsAdminReader]

    def get(self, request):
        try:
            now, tzname = _report_params(request)
        except ValueError as e:
            return Response({"detail": str(e)}, status=400)

        report = admin_report(load_history(request.user.uid), now, tzname)
        report["recent"] = HistoryRecordSerializer(report["recent"], many=True).data
        report["tz"] = tzname
        return Response(report)
