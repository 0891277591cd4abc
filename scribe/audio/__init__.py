"""Audio capture: per-speaker packet buffering, Opus decode, resample, WAV containers."""
from .frames import AudioFrame, PcmBuffer
from .packet_store import PacketStore
from .codec import OpusCodec, decode_frames, downmix
from .wav import build_container, quantize, read_container, resample, silent_container, write_container
from .checkpoint import CheckpointScheduler
from .recorder import SessionRecorder, SessionState, encode_session

__all__ = [
    "AudioFrame",
    "PcmBuffer",
    "PacketStore",
    "OpusCodec",
    "decode_frames",
    "downmix",
    "build_container",
    "quantize",
    "read_container",
    "resample",
    "silent_container",
    "write_container",
    "CheckpointScheduler",
    "SessionRecorder",
    "SessionState",
    "encode_session",
]
