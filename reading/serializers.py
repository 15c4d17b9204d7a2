# reading/serializers.py
import datetime as dt

from django.utils import timezone
from rest_framework import serializers

from .chapters import parse_chapter_names
from .models import HistoryRecord, Subject


class AwareDateTimeField(serializers.DateTimeField):
    """
    Datetime field that ensures tz-aware UTC datetimes.
    - Accepts ISO strings with/without timezone; if naive → assume UTC.
    - Always outputs ISO in UTC.
    """
    def to_internal_value(self, value):
        d = super().to_internal_value(value)
        if d is None:
            return None
        if timezone.is_naive(d):
            d = timezone.make_aware(d, dt.timezone.utc)
        return d.astimezone(dt.timezone.utc)

    def to_representation(self, value):
        if value is None:
            return None
        if timezone.is_naive(value):
            value = timezone.make_aware(value, dt.timezone.utc)
        return super().to_representation(value.astimezone(dt.timezone.utc))


class ChapterInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, allow_blank=True)
    total = serializers.FloatField(required=False, default=0, min_value=0)


class ChapterListField(serializers.Field):
    """
    Chapters for a new subject, either as a list of {name, total?} objects
    or as a comma separated string of names.
    """
    def to_internal_value(self, data):
        if isinstance(data, str):
            return parse_chapter_names(data)
        if not isinstance(data, list):
            raise serializers.ValidationError("chapters must be a list or a comma separated string.")
        items = ChapterInputSerializer(data=data, many=True)
        items.is_valid(raise_exception=True)
        return [dict(item) for item in items.validated_data]

    def to_representation(self, value):
        return value


class SubjectCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    chapters = ChapterListField(required=False, default=list)

    def validate_name(self, v: str):
        v = v.strip()
        if not v:
            raise serializers.ValidationError("name must not be blank.")
        return v

    def validate_chapters(self, v):
        names = [c["name"].strip() for c in v if c.get("name", "").strip()]
        if len(names) != len(set(names)):
            raise serializers.ValidationError("chapter names must be unique within a subject.")
        return v


class SubjectSerializer(serializers.ModelSerializer):
    created_at = AwareDateTimeField(read_only=True)

    class Meta:
        model = Subject
        fields = ("id", "name", "chapters", "version", "created_at")
        read_only_fields = fields


class HistoryRecordSerializer(serializers.ModelSerializer):
    date = AwareDateTimeField(read_only=True)

    class Meta:
        model = HistoryRecord
        fields = (
            "id",
            "user_id",
            "subject_id",
            "subject_name",
            "chapter_id",
            "chapter_name",
            "duration_minutes",
            "date",
        )
        read_only_fields = fields


class ReadingSessionSerializer(serializers.Serializer):
    """
    A finished timer session.
    Notes:
      - chapter_name is always required; chapter_id, when given, is matched first.
      - any duration_seconds is accepted here; below 1 the session is not recorded.
    """
    subject_id = serializers.CharField(max_length=32)
    chapter_name = serializers.CharField(max_length=200)
    chapter_id = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    duration_seconds = serializers.FloatField()

    def validate_chapter_name(self, v: str):
        v = v.strip()
        if not v:
            raise serializers.ValidationError("chapter_name must not be blank.")
        return v


class GoalSettingsSerializer(serializers.Serializer):
    daily_goal_minutes = serializers.IntegerField(min_value=0, required=False)
    weekly_goal_minutes = serializers.IntegerField(min_value=0, required=False)


class PlanRequestSerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1)
