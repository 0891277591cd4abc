import os
from datetime import datetime

from scribe.transcript.writer import HEADER_RULE, TranscriptWriter, strip_header


def test_write_header_and_body(tmp_path):
    writer = TranscriptWriter(str(tmp_path / "transcripts"))
    when = datetime(2024, 3, 9, 21, 15, 0)

    path = writer.write("game_night", "[0:01] A - hello\n", when=when)

    assert path == os.path.join(str(tmp_path / "transcripts"), "game_night.txt")
    with open(path, encoding="utf-8") as f:
        content = f.read()
    assert content == (
        "Session Transcript\n"
        "Session: game_night\n"
        "Date: 2024-03-09 21:15:00\n"
        f"{HEADER_RULE}\n"
        "\n"
        "[0:01] A - hello\n"
    )
    assert TranscriptWriter.read_body(path) == "[0:01] A - hello\n"


def test_suffix_and_no_temp_leftovers(tmp_path):
    writer = TranscriptWriter(str(tmp_path))
    path = writer.write("s", "body", suffix="_checkpoint_001", title="Session Transcript (checkpoint 1)")
    assert os.path.basename(path) == "s_checkpoint_001.txt"
    assert os.listdir(tmp_path) == ["s_checkpoint_001.txt"]


def test_strip_header_without_header_is_identity():
    assert strip_header("[0:01] A - x") == "[0:01] A - x"
