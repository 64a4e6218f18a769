from __future__ import annotations

import pytest

ENV_KEYS = ("AWS_DEFAULT_REGION", "https_proxy", "HTTPS_PROXY")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
