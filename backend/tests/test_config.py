from voicetranslate.config import Settings


def test_credentials_are_read_from_environment_on_access(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("ELEVEN_LABS_KEY", raising=False)
    settings = Settings()
    assert settings.GOOGLE_API_KEY == ""

    monkeypatch.setenv("GOOGLE_API_KEY", "late-google-key")
    monkeypatch.setenv("ELEVEN_LABS_KEY", "late-eleven-key")

    assert settings.GOOGLE_API_KEY == "late-google-key"
    assert settings.ELEVEN_LABS_KEY == "late-eleven-key"


def test_language_names_include_default():
    names = Settings().language_names()

    assert names[0] == "English"
    assert len(names) == 9
