import os
from collections.abc import Iterator

import pytest

from networth.settings import get_settings


@pytest.fixture(autouse=True)
def reset_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
	for env_name in list(os.environ):
		if env_name.startswith("NETWORTH_"):
			monkeypatch.delenv(env_name, raising=False)

	get_settings.cache_clear()
	yield
	get_settings.cache_clear()
