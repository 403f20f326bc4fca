import pytest
from fastapi.testclient import TestClient

from voicetranslate import main


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "google-test-key")
    monkeypatch.setenv("ELEVEN_LABS_KEY", "eleven-test-key")
    return main.settings


@pytest.fixture
def client():
    return TestClient(main.app)
