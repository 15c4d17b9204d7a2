from django.urls import path

from .views import (
    AdminReportView,
    GoalSettingsView,
    HistoryListView,
    ReadingSessionView,
    SignInView,
    StatsView,
    SubjectListView,
    SubjectPlanView,
)

urlpatterns = [
    path("auth/session", SignInView.as_view(), name="sign-in"),
    path("subjects", SubjectListView.as_view(), name="subject-list"),
    path("subjects/<str:subject_id>/plan", SubjectPlanView.as_view(), name="subject-plan"),
    path("history", HistoryListView.as_view(), name="history-list"),
    path("sessions", ReadingSessionView.as_view(), name="reading-session"),
    path("settings/goals", GoalSettingsView.as_view(), name="goal-settings"),
    path("stats", StatsView.as_view(), name="stats"),
    path("admin/report", AdminReportView.as_view(), name="admin-report"),
]
