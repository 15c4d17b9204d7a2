from django.db import migrations, models
import django.utils.timezone
import reading.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GoalSettings",
            fields=[
                ("user_id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("daily_goal_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("weekly_goal_minutes", models.PositiveIntegerField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="HistoryRecord",
            fields=[
                ("id", models.CharField(default=reading.models.new_document_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("subject_id", models.CharField(max_length=32)),
                ("subject_name", models.CharField(max_length=200)),
                ("chapter_id", models.CharField(blank=True, default="", max_length=32)),
                ("chapter_name", models.CharField(max_length=200)),
                ("duration_minutes", models.FloatField()),
                ("date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                "ordering": ["-date", "-id"],
                "indexes": [models.Index(fields=["user_id", "date"], name="idx_history_user_date")],
            },
        ),
        migrations.CreateModel(
            name="Subject",
            fields=[
                ("id", models.CharField(default=reading.models.new_document_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("name", models.CharField(max_length=200)),
                ("chapters", models.JSONField(default=list)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["user_id", "created_at"], name="idx_subject_user_created")],
            },
        ),
    ]
