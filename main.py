"""Command-line entrypoint: toggle recording with a hotkey, stream text to stdout."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Optional

from config import JsonConfigStore, Settings
from errors import ERROR_MESSAGES, ResourceError
from hotkey import ToggleHotkeyAdapter
from interfaces import ConfigStore, TranscriptionBackend
from local_backend import LocalModelBackend
from models import SessionState
from recording_session import RecordingSession
from remote_backend import RemoteJobBackend

logger = logging.getLogger("livescribe")


def build_backend(settings: Settings) -> TranscriptionBackend:
    if settings.backend == "remote":
        return RemoteJobBackend(base_url=settings.endpoint_url, api_key=settings.api_key)
    return LocalModelBackend(models=settings.models)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="livescribe",
        description="Live microphone transcription with a local or remote Whisper backend.",
    )
    parser.add_argument("--backend", choices=["local", "remote"], help="transcription backend")
    parser.add_argument("--language", help="spoken language code, e.g. en")
    parser.add_argument("--endpoint", help="remote job API base URL")
    parser.add_argument(
        "--model",
        action="append",
        dest="models",
        help="local model to try, in priority order (repeatable)",
    )
    parser.add_argument("--hotkey", help="pynput key name that toggles recording, e.g. Key.alt_r")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, store: ConfigStore) -> Settings:
    settings = store.load()
    if args.backend:
        settings.backend = args.backend
    if args.language:
        settings.language = args.language
    if args.endpoint:
        settings.endpoint_url = args.endpoint
    if args.models:
        settings.models = args.models
    if args.hotkey:
        settings.hotkey = args.hotkey
    return settings


class App:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.backend = build_backend(settings)
        self.session = RecordingSession(
            backend=self.backend,
            language=settings.language,
            on_delta=self._on_delta,
            on_error=self._on_error,
            on_state_change=self._on_state_change,
        )
        self.hotkey = ToggleHotkeyAdapter(hotkey_name=settings.hotkey)
        self._quit = threading.Event()

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads)
    # ------------------------------------------------------------------

    def _on_delta(self, text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def _on_error(self, code: str, message: str) -> None:
        logger.warning("%s: %s", ERROR_MESSAGES.get(code, code), message)

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        if to_state == SessionState.RECORDING:
            logger.info("Listening... press %s to stop", self.settings.hotkey)
        elif to_state == SessionState.FINALIZING:
            logger.info("Processing full recording...")
        elif to_state == SessionState.IDLE:
            sys.stdout.write("\n")
            sys.stdout.flush()
            logger.info("Ready. Press %s to record", self.settings.hotkey)

    # ------------------------------------------------------------------
    # Hotkey handler
    # ------------------------------------------------------------------

    def _on_toggle(self) -> None:
        state = self.session.state
        if state == SessionState.IDLE:
            try:
                self.session.start()
            except ResourceError as exc:
                logger.error("Cannot start recording: %s", exc)
        elif state == SessionState.RECORDING:
            # stop() blocks on the final pass; keep the listener thread free
            threading.Thread(target=self.session.stop, daemon=True).start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_toggle=self._on_toggle)
        except RuntimeError as exc:
            logger.error("Hotkey disabled: %s", exc)
            return 1
        logger.info("Ready. Press %s to record, Ctrl+C to quit", self.settings.hotkey)
        try:
            while not self._quit.wait(0.5):
                pass
        except KeyboardInterrupt:
            pass
        self.quit()
        return 0

    def quit(self) -> None:
        self.hotkey.stop()
        self.session.cancel("app quit")
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()
        self._quit.set()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    settings = resolve_settings(args, JsonConfigStore())
    app = App(settings)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
