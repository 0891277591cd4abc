from scribe.diarization.models import SpeakingSegment
from scribe.transcript.merger import first_appearances, merge_chronologically, order_speakers


def test_speakers_ordered_by_first_appearance():
    segments = [
        SpeakingSegment("speaker1", 12000, 20000),
        SpeakingSegment("speaker2", 3000, 8000),
        SpeakingSegment("speaker3", 40000, 45000),
    ]
    texts = {
        "speaker1": "hello there",
        "speaker2": "we begin",
        "speaker3": "I arrive late",
    }

    merged = merge_chronologically(texts, segments)

    assert merged.splitlines() == [
        "[0:03] speaker2 - we begin",
        "[0:12] speaker1 - hello there",
        "[0:40] speaker3 - I arrive late",
    ]


def test_first_appearance_uses_earliest_segment():
    segments = [
        SpeakingSegment("a", 50000, 51000),
        SpeakingSegment("b", 20000, 21000),
        SpeakingSegment("a", 10000, 11000),
    ]
    assert first_appearances(segments) == {"a": 10000, "b": 20000}
    assert order_speakers(["b", "a"], segments) == ["a", "b"]


def test_empty_texts_are_omitted_and_labels_applied():
    segments = [SpeakingSegment("1111", 0, 1000), SpeakingSegment("2222", 500, 900)]
    texts = {"1111": "  ", "2222": "still here\nacross lines"}
    labels = {"1111": "Anna", "2222": "Paolo_Fontana"}

    merged = merge_chronologically(texts, segments, labels.get)

    assert merged == "[0:00] Paolo_Fontana - still here across lines"


def test_speaker_without_segment_follows_unstamped():
    segments = [SpeakingSegment("a", 65000, 70000)]
    merged = merge_chronologically({"z": "no segment", "a": "has one"}, segments)
    assert merged.splitlines() == ["[1:05] a - has one", "[--:--] z - no segment"]


def test_no_segments_lists_speakers_unordered():
    merged = merge_chronologically({"a": "one", "b": "two"}, [])
    assert merged.splitlines() == ["[--:--] a - one", "[--:--] b - two"]


def test_nothing_to_merge():
    assert merge_chronologically({}, []) == ""
    assert merge_chronologically({"a": ""}, [SpeakingSegment("a", 0, 1)]) == ""
