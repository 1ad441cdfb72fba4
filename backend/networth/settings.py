from functools import lru_cache
from pathlib import Path
from urllib.parse import urlparse

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_HISTORY_FILE = Path("data") / "networth-history.json"


class Settings(BaseSettings):
	"""Runtime configuration for the net worth server."""

	model_config = SettingsConfigDict(
		env_file=".env",
		env_prefix="NETWORTH_",
		extra="ignore",
	)

	access_url: SecretStr | None = None
	host: str = "127.0.0.1"
	port: int = 3000
	refresh_interval_seconds: float = 4 * 60 * 60
	request_timeout_seconds: float = 30.0
	shutdown_grace_seconds: float = 10.0
	history_file: Path = DEFAULT_HISTORY_FILE
	change_window_days: int = 30
	fallback_currency: str = "USD"
	log_level: str = "INFO"

	def access_url_value(self) -> str | None:
		if self.access_url is None:
			return None

		url = self.access_url.get_secret_value().strip()
		return url or None

	def history_path(self) -> Path:
		return self.history_file.expanduser().resolve()

	def validate_runtime(self) -> None:
		access_url = self.access_url_value()
		if access_url is None:
			raise ValueError(
				"NETWORTH_ACCESS_URL is not configured. "
				"Claim a setup token with networth-claim first.",
			)

		parsed = urlparse(access_url)
		if parsed.scheme not in {"http", "https"} or not parsed.netloc:
			raise ValueError("NETWORTH_ACCESS_URL must be an http(s) URL.")
		if not parsed.username or parsed.password is None:
			raise ValueError("NETWORTH_ACCESS_URL must embed username and password credentials.")

		if self.refresh_interval_seconds <= 0:
			raise ValueError("NETWORTH_REFRESH_INTERVAL_SECONDS must be positive.")


@lru_cache
def get_settings() -> Settings:
	return Settings()
