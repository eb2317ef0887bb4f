from __future__ import annotations

from pathlib import Path
from typing import Iterable

from datastore.reading_store import build_default_store
from services.queries import build_default_query_service
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "nested" / "readings.json"

    monkeypatch.setenv("READING_STORE_NAME", "custom-readings")
    monkeypatch.setenv("READING_STORE_PATH", str(store_path))
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("QUERY_WORKER_COUNT", "2")
    monkeypatch.setenv("QUERY_TIMEOUT_SECONDS", "3")
    monkeypatch.setenv("HISTORY_LIMIT", "12")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://dashboard.local,,http://ops.local ")

    caches = (get_settings, build_default_store, build_default_query_service)
    _clear_caches(caches)

    settings = get_settings()
    store = build_default_store()
    service = build_default_query_service()

    try:
        assert settings.log_level == "DEBUG"
        assert settings.cors_origins == ("http://dashboard.local", "http://ops.local")
        assert store.name == "custom-readings"
        assert store.persistence_path == Path(store_path)
        assert store_path.parent.is_dir()
        assert store.timeout == 1.5
        assert service.executor._max_workers == 2
        assert service.timeout == 3.0
        assert service.history_limit == 12
        assert service.store is store
    finally:
        service.shutdown()
        store.close()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("READING_STORE_PATH", "   ")
    monkeypatch.setenv("QUERY_WORKER_COUNT", "-3")
    monkeypatch.setenv("HISTORY_LIMIT", "lots")
    monkeypatch.setenv("STORE_CONNECT_RETRY_SECONDS", "0")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", " , ")
    get_settings.cache_clear()

    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.store_path is None
    assert settings.query_workers == 4
    assert settings.history_limit == 48
    assert settings.connect_retry_seconds == 5.0
    assert settings.store_name == "readings"
    assert settings.cors_origins == ("*",)
