"""Tests for settings and durations."""

import json
from datetime import datetime
from unittest.mock import Mock

import pytest

from breaktimer.config import (
    DayConfig,
    Duration,
    NotificationType,
    Settings,
    SettingsStore,
    SoundType,
    WorkingRange,
    duration_seconds,
)


class TestDuration:
    """Tests for Duration."""

    def test_parse_hms(self):
        assert Duration.parse("01:30:15") == Duration(hours=1, minutes=30, seconds=15)

    def test_parse_minutes_seconds(self):
        assert Duration.parse("05:00") == Duration(minutes=5)

    @pytest.mark.parametrize("value", ["", "abc", "1:2:3:4", "-1:00:00", "aa:bb:cc"])
    def test_parse_invalid(self, value):
        with pytest.raises(ValueError):
            Duration.parse(value)

    def test_str(self):
        assert str(Duration(minutes=28)) == "00:28:00"

    def test_total_seconds(self):
        assert Duration(hours=1, minutes=2, seconds=3).total_seconds() == 3723

    def test_duration_seconds_never_zero(self):
        assert duration_seconds(Duration()) == 1
        assert duration_seconds(Duration(seconds=1)) == 1
        assert duration_seconds(Duration(minutes=5)) == 300

    def test_add_to_crosses_midnight(self):
        start = datetime(2024, 1, 1, 23, 50)
        assert Duration(minutes=30).add_to(start) == datetime(2024, 1, 2, 0, 20)


class TestSettings:
    """Tests for Settings serialization."""

    def test_round_trip(self):
        settings = Settings(
            notification_type=NotificationType.NOTIFICATION,
            break_frequency=Duration(hours=1),
            postpone_limit=3,
            sound_type=SoundType.SCIFI,
            working_hours_friday=DayConfig(
                enabled=True, ranges=[WorkingRange(480, 720), WorkingRange(780, 1020)]
            ),
        )

        data = json.loads(json.dumps(settings.to_dict()))

        assert Settings.from_dict(data) == settings

    def test_serialized_shape(self):
        data = Settings().to_dict()

        assert data["break_frequency"] == "00:28:00"
        assert data["notification_type"] == "popup"
        assert data["working_hours_sunday"]["enabled"] is False
        assert data["working_hours_monday"]["ranges"] == [{"from_minutes": 540, "to_minutes": 1080}]

    def test_unknown_keys_ignored(self):
        settings = Settings.from_dict({"postpone_limit": 2, "legacy_key": True})

        assert settings.postpone_limit == 2

    def test_missing_keys_use_defaults(self):
        settings = Settings.from_dict({})

        assert settings == Settings()

    def test_day_config_by_weekday(self):
        settings = Settings()

        assert settings.day_config(0) is settings.working_hours_monday
        assert settings.day_config(6) is settings.working_hours_sunday


class TestSettingsStore:
    """Tests for SettingsStore persistence."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(Settings(postpone_limit=4), path=path)
        store.save()

        loaded = SettingsStore.load(path)

        assert loaded.get().postpone_limit == 4

    def test_load_missing_file_uses_defaults(self, tmp_path):
        store = SettingsStore.load(tmp_path / "missing.json")

        assert store.get() == Settings()

    def test_load_malformed_file_uses_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text('{"break_frequency": "soon"}')

        store = SettingsStore.load(path)

        assert store.get() == Settings()

    def test_set_persists_and_notifies(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        on_change = Mock()
        store = SettingsStore(path=path, on_change=on_change)
        new_settings = Settings(breaks_enabled=False)

        store.set(new_settings)

        assert store.get() is new_settings
        on_change.assert_called_once_with(new_settings)
        assert json.loads(path.read_text())["breaks_enabled"] is False
