"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

API_KEY_ENV = "LIVESCRIBE_API_KEY"
DEFAULT_MODELS = ["tiny.en", "tiny"]
DEFAULT_HOTKEY = "Key.alt_r"


@dataclass
class Settings:
    api_key: str = ""
    endpoint_url: str = ""
    language: str = "en"
    backend: str = "local"
    models: list[str] = field(default_factory=lambda: list(DEFAULT_MODELS))
    hotkey: str = DEFAULT_HOTKEY


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "livescribe" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key") or os.getenv(API_KEY_ENV, ""))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_endpoint_url(self) -> str:
        return str(self._read_all().get("endpoint_url", ""))

    def set_endpoint_url(self, url: str) -> None:
        self._set("endpoint_url", url)

    def get_language(self) -> str:
        return str(self._read_all().get("language", "en"))

    def set_language(self, language: str) -> None:
        self._set("language", language)

    def get_backend(self) -> str:
        value = str(self._read_all().get("backend", "local"))
        return value if value in ("local", "remote") else "local"

    def set_backend(self, backend: str) -> None:
        if backend not in ("local", "remote"):
            raise ValueError(f"unknown backend: {backend}")
        self._set("backend", backend)

    def get_models(self) -> list[str]:
        models = self._read_all().get("models")
        if isinstance(models, list) and models:
            return [str(m) for m in models]
        return list(DEFAULT_MODELS)

    def set_models(self, models: list[str]) -> None:
        self._set("models", list(models))

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def load(self) -> Settings:
        return Settings(
            api_key=self.get_api_key(),
            endpoint_url=self.get_endpoint_url(),
            language=self.get_language(),
            backend=self.get_backend(),
            models=self.get_models(),
            hotkey=self.get_hotkey(),
        )

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
