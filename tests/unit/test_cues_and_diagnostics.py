# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

import numpy as np
import soundfile as sf

from ambient_voice.audio.cues import AudioCue, CueLibrary, tone
from ambient_voice.audio.diagnostics import WavDiagnosticSink
from ambient_voice.audio.frames import AudioFrame, AudioSource


def test_tone_has_expected_length_and_fades():
    samples = tone(440.0, 100)

    assert samples.size == 1600
    assert samples[0] == 0.0
    assert np.max(np.abs(samples)) <= 0.3 + 1e-6


def test_default_cues_are_synthesized():
    cues = CueLibrary()

    assert len(cues.pcm(AudioCue.EXIT_DIALOG)) == 2560 * 2
    assert len(cues.pcm(AudioCue.INTERRUPTION)) == 1440 * 2


def test_cue_loaded_from_wav_is_resampled(tmp_path: Path):
    path = tmp_path / "exit.wav"
    sf.write(path, np.zeros((4800, 2), dtype=np.float32), 48000)

    cues = CueLibrary({AudioCue.EXIT_DIALOG: str(path)})

    # 100 ms stereo @ 48 kHz -> 100 ms mono @ 16 kHz
    assert len(cues.pcm(AudioCue.EXIT_DIALOG)) == 1600 * 2


def test_missing_cue_file_falls_back_to_tone(tmp_path: Path):
    cues = CueLibrary({AudioCue.EXIT_DIALOG: str(tmp_path / "absent.wav")})

    assert len(cues.pcm(AudioCue.EXIT_DIALOG)) == 2560 * 2


def test_diagnostic_sink_writes_one_wav_per_source(tmp_path: Path):
    sink = WavDiagnosticSink(tmp_path / "capture")
    pcm = np.arange(320, dtype="<i2").tobytes()

    sink(AudioFrame(source=AudioSource.MICROPHONE, pcm_bytes=pcm, ts_ms=0))
    sink(AudioFrame(source=AudioSource.MICROPHONE, pcm_bytes=pcm, ts_ms=20))
    sink(AudioFrame(source=AudioSource.WEARABLE, pcm_bytes=pcm, ts_ms=20))
    sink.close()

    files = sorted((tmp_path / "capture").glob("*.wav"))
    assert [f.name.split("-")[0] for f in files] == ["microphone", "wearable"]
    data, rate = sf.read(files[0], dtype="int16")
    assert rate == 16000
    assert data.size == 640
