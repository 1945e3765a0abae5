from dogfight.game.config import ServerConfig


def test_defaults_keep_sweep_inside_timeout():
    cfg = ServerConfig()
    assert cfg.port == 8080
    assert cfg.reap_interval_sec < cfg.idle_timeout_sec
    assert cfg.spawn_position == (0.0, 100.0, 0.0)


def test_from_env(monkeypatch):
    monkeypatch.setenv("DOGFIGHT_PORT", "9001")
    monkeypatch.setenv("DOGFIGHT_IDLE_TIMEOUT", "45")
    monkeypatch.setenv("DOGFIGHT_CORS_ALLOW_ALL", "no")
    monkeypatch.setenv("DOGFIGHT_CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("DOGFIGHT_LOG_LEVEL", "debug")
    monkeypatch.setenv("DOGFIGHT_SEND_TIMEOUT", "0.25")
    cfg = ServerConfig.from_env()
    assert cfg.port == 9001
    assert cfg.idle_timeout_sec == 45.0
    assert cfg.cors_allow_all is False
    assert cfg.cors_allowed_origins == ["https://a.example", "https://b.example"]
    assert cfg.log_level == "DEBUG"
    assert cfg.send_timeout_sec == 0.25


def test_plain_port_and_bad_numbers(monkeypatch):
    monkeypatch.delenv("DOGFIGHT_PORT", raising=False)
    monkeypatch.setenv("PORT", "7000")
    monkeypatch.setenv("DOGFIGHT_REAP_INTERVAL", "soon")
    cfg = ServerConfig.from_env()
    assert cfg.port == 7000
    assert cfg.reap_interval_sec == 10.0
