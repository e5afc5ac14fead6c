"""Tests for service wiring and model selection."""

from pathlib import Path

from ada.config import GeneralSettings, ModelSettings, PermissionSettings, Settings
from ada.llm.anthropic_model import AnthropicModel
from ada.llm.factory import build_model
from ada.llm.fixture import FixtureModel
from ada.llm.ollama import OllamaModel
from ada.services.backends import IcsBackend, MemoryBackend
from ada.services.container import build_services


def _settings(provider="ollama", tmp_path=Path("/tmp/ada-test"), **permissions):
    return Settings(
        general=GeneralSettings(data_path=tmp_path),
        model=ModelSettings(provider=provider, timeout_seconds=7),
        permissions=PermissionSettings(**permissions),
    )


class TestBuildModel:
    def test_default_is_ollama(self):
        assert isinstance(build_model(_settings()), OllamaModel)

    def test_anthropic(self):
        assert isinstance(build_model(_settings("anthropic")), AnthropicModel)

    def test_dry_run_overrides_provider(self):
        assert isinstance(build_model(_settings("anthropic"), dry_run=True), FixtureModel)


class TestBuildServices:
    def test_shared_instances(self, tmp_path):
        services = build_services(_settings(tmp_path=tmp_path))
        assert services.controller.executor is services.executor
        assert services.executor.calendar is services.calendar
        assert services.controller.generator is services.generator
        assert services.generator.timeout == 7

    def test_ics_backend_under_data_path(self, tmp_path):
        services = build_services(_settings(tmp_path=tmp_path))
        backend = services.calendar._backend
        assert isinstance(backend, IcsBackend)
        assert backend.directory == tmp_path

    def test_dry_run_uses_memory_backend(self, tmp_path):
        services = build_services(_settings(tmp_path=tmp_path), dry_run=True)
        assert isinstance(services.calendar._backend, MemoryBackend)
        assert isinstance(services.generator.model, FixtureModel)

    def test_standing_permissions_applied(self, tmp_path):
        services = build_services(_settings(tmp_path=tmp_path, calendar="allow"))
        assert services.permissions._standing["calendar"] == "allow"
        assert services.permissions._standing["reminders"] == "ask"
