import subprocess

import pytest

import core.playback as playback
from core.errors import SoundPlaybackFailed
from core.playback import SoundPlayer


class FakeProc:
    def __init__(self, args):
        self.args = args
        self.terminated = False

    def poll(self):
        return 0 if self.terminated else None

    def terminate(self):
        self.terminated = True

    def wait(self, timeout=None):
        return 0

    def kill(self):
        self.terminated = True


@pytest.fixture
def sounds_dir(tmp_path):
    (tmp_path / "sounds").mkdir()
    (tmp_path / "sounds" / "adhan-default.mp3").write_bytes(b"")
    return tmp_path


@pytest.fixture
def launched(monkeypatch):
    procs = []

    def fake_popen(args, **kwargs):
        proc = FakeProc(args)
        procs.append(proc)
        return proc

    monkeypatch.setattr(playback.subprocess, "Popen", fake_popen)
    return procs


def test_display_paths_resolve_into_sounds_dir(sounds_dir):
    player = SoundPlayer(sounds_dir=str(sounds_dir))
    assert player.resolve("/sounds/adhan-default.mp3") == str(sounds_dir / "sounds" / "adhan-default.mp3")


def test_missing_sound_is_reported(sounds_dir):
    player = SoundPlayer(sounds_dir=str(sounds_dir))
    with pytest.raises(SoundPlaybackFailed):
        player.resolve("/sounds/nope.mp3")
    with pytest.raises(SoundPlaybackFailed):
        player.resolve("")


def test_play_replaces_current_sound(sounds_dir, launched):
    player = SoundPlayer(sounds_dir=str(sounds_dir))
    assert player.play("/sounds/adhan-default.mp3")
    assert player.play("/sounds/adhan-default.mp3")

    assert len(launched) == 2
    assert launched[0].terminated
    assert player.is_alive()
    assert launched[1].args[0] == "ffplay"

    player.stop()
    assert not player.is_alive()
    assert player.current_path() is None


def test_play_failure_returns_false(sounds_dir, monkeypatch):
    def missing_ffplay(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(playback.subprocess, "Popen", missing_ffplay)
    player = SoundPlayer(sounds_dir=str(sounds_dir))
    assert not player.play("/sounds/adhan-default.mp3")
    assert not player.play("/sounds/nope.mp3")


def test_stop_escalates_to_kill(sounds_dir, launched, monkeypatch):
    player = SoundPlayer(sounds_dir=str(sounds_dir))
    player.play("/sounds/adhan-default.mp3")
    proc = launched[0]
    proc.terminate = lambda: None

    def slow_wait(timeout=None):
        raise subprocess.TimeoutExpired("ffplay", timeout)

    proc.wait = slow_wait
    player.stop()
    assert proc.terminated
