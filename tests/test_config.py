"""Tests for settings, the SLA config model, the YAML config manager and the scheduler."""

import pytest
from pydantic import ValidationError
from watchdog.events import FileModifiedEvent, FileMovedEvent

from workorder_sla.config import Settings
from workorder_sla.core import ConfigurationException
from workorder_sla.sla.domain import SLAConfig
from workorder_sla.sla.infrastructure import SLAConfigManager, SLAScheduler
from workorder_sla.sla.infrastructure.external import ConfigFileHandler


class TestSettings:

    def test_defaults(self):
        settings = Settings()

        assert settings.sla_default_hours == 72
        assert settings.sla_near_due_ratio == 0.75
        assert settings.sla_elapsed_mode == "business"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SLA_ELAPSED_MODE", "Calendar")
        monkeypatch.setenv("SLA_DEFAULT_HOURS", "48")

        settings = Settings()

        assert settings.sla_elapsed_mode == "calendar"
        assert settings.sla_default_hours == 48

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(environment="qa")

    def test_sla_config_from_settings(self):
        config = SLAConfig.from_settings(Settings(sla_default_hours=24, sla_elapsed_mode="calendar"))

        assert config.default_sla_hours == 24
        assert config.elapsed_mode == "calendar"
        assert config.stops_clock("EXTERNAL_DEPENDENCY")


class TestSLAConfig:

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            SLAConfig(elapsed_mode="lunar")

    def test_invalid_ratio(self):
        with pytest.raises(ValidationError):
            SLAConfig(near_due_ratio=1.5)

    def test_policy_normalization(self):
        config = SLAConfig(pause_kind_policy={"sanear": True, " vistoria ": 1})

        assert config.pause_kind_policy == {"EXTERNAL_DEPENDENCY": True, "VISTORIA": True}
        assert config.stops_clock("Vistoria")
        assert not config.stops_clock("FERIAS")

    def test_dependency_pauses_can_be_disabled(self):
        config = SLAConfig(pause_kind_policy={"EXTERNAL_DEPENDENCY": False})
        assert not config.stops_clock("SANEAR")


class TestSLAConfigManager:

    def test_missing_file_uses_base(self, tmp_path):
        base = SLAConfig(default_sla_hours=48)
        manager = SLAConfigManager(base)

        assert manager.load(tmp_path / "missing.yaml") == base
        assert manager.get_config().default_sla_hours == 48

    def test_yaml_overrides_base(self, tmp_path):
        path = tmp_path / "sla_config.yaml"
        path.write_text(
            "default_sla_hours: 24\n"
            "elapsed_mode: calendar\n"
            "pause_kind_policy:\n"
            "  SANEAR: true\n"
            "  VISTORIA: true\n",
            encoding="utf-8",
        )
        manager = SLAConfigManager(SLAConfig(near_due_ratio=0.5))
        config = manager.load(path)

        assert config.default_sla_hours == 24
        assert config.near_due_ratio == 0.5
        assert config.elapsed_mode == "calendar"
        assert config.stops_clock("VISTORIA")

    @pytest.mark.parametrize("content", [
        "default_sla_hours: [unclosed\n",
        "near_due_ratio: 2\n",
        "- just\n- a list\n",
    ])
    def test_invalid_file(self, tmp_path, content):
        path = tmp_path / "sla_config.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationException):
            SLAConfigManager().load(path)

    def test_reload_keeps_previous_config_on_error(self, tmp_path):
        path = tmp_path / "sla_config.yaml"
        path.write_text("default_sla_hours: 24\n", encoding="utf-8")
        manager = SLAConfigManager()
        manager.load(path)

        path.write_text("elapsed_mode: lunar\n", encoding="utf-8")
        assert manager.reload() is False
        assert manager.config.default_sla_hours == 24

        path.write_text("default_sla_hours: 12\n", encoding="utf-8")
        assert manager.reload() is True
        assert manager.config.default_sla_hours == 12

    def test_reload_before_load(self):
        assert SLAConfigManager().reload() is False

    def test_watching_lifecycle(self, tmp_path):
        path = tmp_path / "sla_config.yaml"
        path.write_text("default_sla_hours: 24\n", encoding="utf-8")
        manager = SLAConfigManager()
        manager.load(path)

        manager.start_watching()
        manager.stop_watching()
        manager.stop_watching()

    def test_watching_requires_load(self):
        with pytest.raises(RuntimeError):
            SLAConfigManager().start_watching()

    def test_handler_reloads_on_atomic_save(self, tmp_path):
        path = tmp_path / "sla_config.yaml"
        path.write_text("default_sla_hours: 24\n", encoding="utf-8")
        manager = SLAConfigManager()
        manager.load(path)
        handler = ConfigFileHandler(manager, path)

        path.write_text("default_sla_hours: 36\n", encoding="utf-8")
        handler.on_modified(FileModifiedEvent(str(tmp_path / "other.yaml")))
        assert manager.config.default_sla_hours == 24

        handler.on_moved(FileMovedEvent(str(tmp_path / ".sla_config.yaml.swp"), str(path)))
        assert manager.config.default_sla_hours == 36


class TestSLAScheduler:

    @pytest.mark.anyio
    async def test_disabled_with_zero_interval(self):
        scheduler = SLAScheduler(interval_seconds=0)

        async def job():
            pass

        await scheduler.start(job)
        assert not scheduler.is_running
        await scheduler.stop()

    @pytest.mark.anyio
    async def test_start_and_stop(self):
        scheduler = SLAScheduler(interval_seconds=3600)

        async def job():
            pass

        await scheduler.start(job)
        assert scheduler.is_running

        await scheduler.stop()
        assert not scheduler.is_running
