from typing import Generator

import pytest

from config import AppSettings, config

SETTINGS_ENV_VARS = tuple(name.upper() for name in AppSettings.model_fields)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    # Keep a developer's .env or shell exports out of the tests.
    monkeypatch.setitem(AppSettings.model_config, "env_file", None)
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config.cache_clear()
    yield
    config.cache_clear()
