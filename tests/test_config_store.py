from __future__ import annotations

from pathlib import Path

import pytest

from config import API_KEY_ENV, DEFAULT_HOTKEY, DEFAULT_MODELS, JsonConfigStore


def test_config_read_write(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_hotkey() == DEFAULT_HOTKEY

    store.set_api_key("abc")
    store.set_hotkey("Key.f9")
    store.set_endpoint_url("https://jobs.example.test/v2/whisper")

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_hotkey() == "Key.f9"
    assert reloaded.get_endpoint_url() == "https://jobs.example.test/v2/whisper"


def test_config_invalid_json_fallback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_hotkey() == DEFAULT_HOTKEY
    assert store.get_models() == DEFAULT_MODELS


def test_non_object_json_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert JsonConfigStore(path=path).get_language() == "en"


def test_api_key_falls_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(API_KEY_ENV, "from-env")
    store = JsonConfigStore(path=tmp_path / "config.json")

    assert store.get_api_key() == "from-env"
    store.set_api_key("from-file")
    assert store.get_api_key() == "from-file"


def test_backend_is_validated(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    with pytest.raises(ValueError):
        store.set_backend("cloud")

    path.write_text('{"backend": "cloud"}', encoding="utf-8")
    assert store.get_backend() == "local"

    store.set_backend("remote")
    assert store.get_backend() == "remote"


def test_load_collects_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    store = JsonConfigStore(path=tmp_path / "nested" / "config.json")
    store.set_language("de")
    store.set_models(["small", "tiny"])

    settings = store.load()

    assert settings.language == "de"
    assert settings.models == ["small", "tiny"]
    assert settings.backend == "local"
    assert settings.api_key == ""
