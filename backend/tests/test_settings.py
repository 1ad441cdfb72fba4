from pathlib import Path

import pytest

from networth.main import build_runtime
from networth.services.simplefin import SimpleFinClient
from networth.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def isolated_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.chdir(tmp_path)


def test_settings_default_to_four_hour_refresh(tmp_path: Path) -> None:
	settings = get_settings()

	assert settings.access_url_value() is None
	assert settings.port == 3000
	assert settings.refresh_interval_seconds == 4 * 60 * 60
	assert settings.change_window_days == 30
	assert settings.history_path() == tmp_path / "data" / "networth-history.json"


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
	monkeypatch.setenv("NETWORTH_ACCESS_URL", "https://u:p@bridge.example/simplefin")
	monkeypatch.setenv("NETWORTH_PORT", "8080")
	monkeypatch.setenv("NETWORTH_REFRESH_INTERVAL_SECONDS", "60")
	settings = get_settings()

	assert settings.access_url_value() == "https://u:p@bridge.example/simplefin"
	assert settings.port == 8080
	assert settings.refresh_interval_seconds == 60
	assert "p@bridge" not in repr(settings)
	settings.validate_runtime()


def test_settings_read_env_file(tmp_path: Path) -> None:
	(tmp_path / ".env").write_text(
		"NETWORTH_ACCESS_URL=https://u:p@bridge.example/simplefin\nUNRELATED=1\n",
		encoding="utf-8",
	)

	assert get_settings().access_url_value() == "https://u:p@bridge.example/simplefin"


@pytest.mark.parametrize(
	("access_url", "message"),
	[
		(None, "not configured"),
		("   ", "not configured"),
		("bridge.example/simplefin", "http"),
		("https://bridge.example/simplefin", "credentials"),
	],
)
def test_validate_runtime_rejects_unusable_access_urls(access_url: str | None, message: str) -> None:
	settings = Settings(_env_file=None, access_url=access_url)

	with pytest.raises(ValueError, match=message):
		settings.validate_runtime()


def test_validate_runtime_rejects_non_positive_interval() -> None:
	settings = Settings(
		_env_file=None,
		access_url="https://u:p@bridge.example/simplefin",
		refresh_interval_seconds=0,
	)

	with pytest.raises(ValueError, match="REFRESH_INTERVAL"):
		settings.validate_runtime()


def test_build_runtime_wires_simplefin_client_from_settings(tmp_path: Path) -> None:
	settings = Settings(
		_env_file=None,
		access_url="https://u:p@bridge.example/simplefin",
		request_timeout_seconds=5,
		history_file=tmp_path / "h.json",
	)

	runtime = build_runtime(settings)

	assert isinstance(runtime.scheduler.client, SimpleFinClient)
	assert runtime.scheduler.client.base_url == "https://bridge.example/simplefin"
	assert runtime.scheduler.client.timeout == 5
	assert runtime.scheduler.history.path == tmp_path / "h.json"
	assert runtime.query_service.cache is runtime.scheduler.cache
