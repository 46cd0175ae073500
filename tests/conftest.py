import pytest


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the user's config file and colour settings out of every test."""
    monkeypatch.delenv("MDV_CONFIG_PATH", raising=False)
    monkeypatch.delenv("MDV_NO_COLOR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    return tmp_path
