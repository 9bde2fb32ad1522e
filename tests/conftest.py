import pytest

from rastro.config import settings
from rastro.storage import database


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", str(tmp_path))
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")
    monkeypatch.setattr(settings, "ship24_api_key", None)
    monkeypatch.setattr(settings, "relay_url", None)
    monkeypatch.setattr(settings, "whatsapp_status_url", None)
    monkeypatch.setattr(settings, "relevance_window_ms", 60_000)
    database.init_db()
    return settings
