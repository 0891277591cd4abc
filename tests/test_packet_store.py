import threading

from scribe.audio.frames import AudioFrame
from scribe.audio.packet_store import PacketStore


def _frame(speaker: str, n: int) -> AudioFrame:
    return AudioFrame(speaker_id=speaker, payload=b"\x01" + n.to_bytes(4, "little"), capture_offset_ms=n)


def test_drain_returns_frames_per_speaker_and_resets():
    store = PacketStore()
    store.append("a", _frame("a", 0))
    store.append("a", _frame("a", 20))
    store.append("b", _frame("b", 10))
    assert store.count() == 3

    drained = store.drain_all()

    assert store.count() == 0
    assert [f.capture_offset_ms for f in drained["a"]] == [0, 20]
    assert [f.capture_offset_ms for f in drained["b"]] == [10]
    assert store.drain_all() == {}


def test_registered_speaker_without_frames_is_not_drained():
    store = PacketStore()
    store.register("quiet")
    assert store.speaker_ids() == ["quiet"]
    assert store.drain_all() == {}


def test_empty_payload_is_dropped():
    store = PacketStore()
    assert store.append("a", AudioFrame("a", b"", 0)) is False
    assert store.append("a", AudioFrame("a", None, 0)) is False
    assert store.count() == 0
    assert store.dropped_frames == 2


def test_closed_store_rejects_appends_but_keeps_buffer():
    store = PacketStore()
    store.append("a", _frame("a", 0))
    store.close()
    assert store.append("a", _frame("a", 1)) is False
    assert store.count() == 1
    assert len(store.drain_all()["a"]) == 1


def test_concurrent_append_and_drain_loses_and_duplicates_nothing():
    store = PacketStore()
    n_speakers, per_speaker = 8, 1500
    barrier = threading.Barrier(n_speakers + 1)

    def produce(i: int) -> None:
        speaker = f"s{i}"
        barrier.wait()
        for n in range(per_speaker):
            store.append(speaker, _frame(speaker, n))

    threads = [threading.Thread(target=produce, args=(i,)) for i in range(n_speakers)]
    for t in threads:
        t.start()
    barrier.wait()

    drains = []
    while any(t.is_alive() for t in threads):
        drains.append(store.drain_all())
    for t in threads:
        t.join()
    drains.append(store.drain_all())
    assert store.count() == 0

    seen: dict[str, list[int]] = {}
    for drained in drains:
        for speaker, frames in drained.items():
            seen.setdefault(speaker, []).extend(f.capture_offset_ms for f in frames)

    assert sorted(seen) == sorted(f"s{i}" for i in range(n_speakers))
    for offsets in seen.values():
        # Exactly once each, and per-speaker order survives the drain boundaries.
        assert offsets == list(range(per_speaker))
