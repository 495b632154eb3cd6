"""
Alarm sound playback using ffplay.

One SoundPlayer owns at most one ffplay process. Starting a new sound stops
the previous one; `stop()` silences immediately. Playback failures are logged
and reported as a False return, never raised to the caller.
"""

from __future__ import annotations
import os
import subprocess
import threading
import logging
from typing import Optional

from core.errors import SoundPlaybackFailed


class SoundPlayer:
    def __init__(
            self,
            name: str = "player",
            sounds_dir: Optional[str] = None,
            ffplay_path: str = "ffplay",
            base_args: Optional[list[str]] = None,
    ):
        self.name = name
        self.sounds_dir = sounds_dir
        self.ffplay_path = ffplay_path

        self.base_args = base_args or [
            "-loglevel", "error",
            "-autoexit",
            "-nodisp",
        ]

        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.RLock()
        self._current_path: Optional[str] = None

    # ------------ public API ------------
    def play(self, path: str) -> bool:
        """Play `path` once, replacing whatever is playing. Returns False on failure."""
        try:
            resolved = self.resolve(path)
            with self._lock:
                self._stop_proc_locked()
                self._proc = self._launch(resolved)
                self._current_path = resolved
            logging.info(f"[PLAY] {self.name} playing {os.path.basename(resolved)}")
            return True
        except SoundPlaybackFailed as e:
            logging.error(f"[PLAY] {self.name} playback failed: {e}")
            return False

    def stop(self) -> None:
        with self._lock:
            was_playing = bool(self._proc and self._proc.poll() is None)
            self._stop_proc_locked()
            self._current_path = None
        if was_playing:
            logging.info(f"[PLAY] {self.name} stopped")

    def is_alive(self) -> bool:
        with self._lock:
            return bool(self._proc and self._proc.poll() is None)

    def current_path(self) -> Optional[str]:
        with self._lock:
            return self._current_path

    def resolve(self, path: str) -> str:
        """Map display-style paths such as /sounds/a.wav onto the sounds directory."""
        if not path:
            raise SoundPlaybackFailed("no sound path configured")
        if os.path.isfile(path):
            return path
        if self.sounds_dir:
            candidate = os.path.join(self.sounds_dir, path.lstrip("/\\"))
            if os.path.isfile(candidate):
                return candidate
            candidate = os.path.join(self.sounds_dir, os.path.basename(path))
            if os.path.isfile(candidate):
                return candidate
        raise SoundPlaybackFailed(f"sound file not found: {path}")

    # ------------ internals ------------
    def _launch(self, path: str) -> subprocess.Popen:
        args = [self.ffplay_path, *self.base_args, path]
        try:
            return subprocess.Popen(
                args,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            raise SoundPlaybackFailed("ffplay not found (install FFmpeg)")
        except OSError as e:
            raise SoundPlaybackFailed(f"launch error: {e}")

    def _stop_proc_locked(self) -> None:
        """Terminate ffplay cleanly."""
        if self._proc:
            try:
                if self._proc.poll() is None:
                    self._proc.terminate()
                    try:
                        self._proc.wait(timeout=2)
                    except subprocess.TimeoutExpired:
                        self._proc.kill()
            except OSError as e:
                logging.warning(f"[PLAY] {self.name} failed to terminate ffplay: {e}")
            finally:
                self._proc = None
