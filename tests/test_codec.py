import numpy as np
import pytest

from conftest import FakeDecoder
from scribe.audio.codec import OpusCodec, decode_frames, downmix
from scribe.audio.frames import AudioFrame
from scribe.errors import FrameDecodeError, NoAudioDecoded


def test_downmix_averages_left_and_right():
    stereo = np.array([1.0, 0.0, 0.5, 0.5, -1.0, 1.0], dtype=np.float32)
    assert downmix(stereo, 2).tolist() == [0.5, 0.5, 0.0]


def test_downmix_mono_passthrough():
    mono = np.array([0.1, 0.2], dtype=np.float32)
    assert np.array_equal(downmix(mono, 1), mono)


def test_decode_mono_uses_injected_decoder():
    codec = OpusCodec(48000, 2, decoder=FakeDecoder())
    out = codec.decode_mono(bytes([255, 0, 255]))
    assert out.tolist() == [1.0, 0.0, 1.0]


def test_decode_wraps_decoder_failure():
    codec = OpusCodec(48000, 2, decoder=FakeDecoder())
    with pytest.raises(FrameDecodeError):
        codec.decode(b"BAD packet")
    with pytest.raises(FrameDecodeError):
        codec.decode(b"")


def test_decode_frames_counts_failures_and_keeps_going():
    codec = OpusCodec(48000, 2, decoder=FakeDecoder())
    frames = [
        AudioFrame("a", bytes([255] * 4), 0),
        AudioFrame("a", b"BAD!", 20),
        AudioFrame("a", bytes([0] * 4), 40),
    ]

    batch = decode_frames(frames, codec, "a")

    assert batch.decoded == 2
    assert batch.failed == 1
    assert [offset for offset, _ in batch.pieces] == [0, 40]
    buf = batch.to_buffer()
    assert buf.sample_rate_hz == 48000
    assert buf.samples.tolist() == [1.0] * 4 + [0.0] * 4


def test_decode_frames_all_failed_raises():
    codec = OpusCodec(48000, 2, decoder=FakeDecoder())
    frames = [AudioFrame("a", b"BAD", n * 20) for n in range(3)]
    with pytest.raises(NoAudioDecoded):
        decode_frames(frames, codec, "a")
