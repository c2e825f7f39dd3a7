import pytest

from storyboard_previs.config import PrevisSettings


def test_from_env_reads_prefixed_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORYBOARD_PREVIS_FRAME_RATE", "30")
    monkeypatch.setenv("STORYBOARD_PREVIS_LOOP", "off")
    monkeypatch.setenv("STORYBOARD_PREVIS_SNAP_TO_CLIPS", "no")
    monkeypatch.setenv("STORYBOARD_PREVIS_DEFAULT_FRAME_DURATION", "2.5")
    monkeypatch.setenv("STORYBOARD_PREVIS_AUDIO_VOLUME", "0.4")
    monkeypatch.setenv("STORYBOARD_PREVIS_LOG_LEVEL", "debug")
    monkeypatch.setenv("STORYBOARD_PREVIS_HISTORY_LIMIT", "10")

    settings = PrevisSettings.from_env()

    assert settings.frame_rate == 30.0
    assert settings.looping is False
    assert settings.snap_enabled is True
    assert settings.snap_to_clips is False
    assert settings.default_frame_duration == 2.5
    assert settings.audio_volume == 0.4
    assert settings.log_level == "DEBUG"
    assert settings.history_limit == 10


def test_from_env_falls_back_on_malformed_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORYBOARD_PREVIS_FRAME_RATE", "-5")
    monkeypatch.setenv("STORYBOARD_PREVIS_LOOP", "maybe")
    monkeypatch.setenv("STORYBOARD_PREVIS_DEFAULT_FRAME_DURATION", "0.01")
    monkeypatch.setenv("STORYBOARD_PREVIS_AUDIO_VOLUME", "loud")
    monkeypatch.setenv("STORYBOARD_PREVIS_HISTORY_LIMIT", "0")

    settings = PrevisSettings.from_env()

    assert settings.frame_rate == 24.0
    assert settings.looping is True
    assert settings.default_frame_duration == 0.1
    assert settings.audio_volume == 1.0
    assert settings.history_limit == 50


def test_validate_rejects_out_of_range_settings() -> None:
    with pytest.raises(ValueError):
        PrevisSettings(frame_rate=0).validate()
    with pytest.raises(ValueError):
        PrevisSettings(default_frame_duration=0.05).validate()
    with pytest.raises(ValueError):
        PrevisSettings(audio_volume=1.5).validate()
    with pytest.raises(ValueError):
        PrevisSettings(history_limit=0).validate()
