"""
Basic server tests.
"""

from cardtable.server import main as server_main


def test_server_import():
    """Test server module import."""
    assert callable(server_main.main)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "6000")
    assert server_main._env_int("PORT", 5555) == 6000
    monkeypatch.setenv("PORT", "not-a-port")
    assert server_main._env_int("PORT", 5555) == 5555
    monkeypatch.delenv("PORT")
    assert server_main._env_int("PORT", 5555) == 5555


def test_send_timeout_override(monkeypatch):
    monkeypatch.setenv("SEND_TIMEOUT", "0.5")
    assert server_main._env_float("SEND_TIMEOUT", 2.0) == 0.5
    monkeypatch.setenv("SEND_TIMEOUT", "soon")
    assert server_main._env_float("SEND_TIMEOUT", 2.0) == 2.0
