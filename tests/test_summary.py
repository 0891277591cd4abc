import asyncio

from scribe.errors import GenerationError
from scribe.services.generation import GenerationEngine
from scribe.services.summary import revise_transcript, summarize_transcript
from scribe.transcript.scenes import boundaries_from_cut_points

TRANSCRIPT = "\n".join(
    [
        "[0:05] Anna - We open the heavy door and look inside the room.",
        "[0:40] Bob - There is a long corridor with torches on both walls.",
        "[1:20] Carla - I cast detect magic before anyone steps forward.",
    ]
)


class FakeEngine(GenerationEngine):
    def __init__(self, fail_on=None):
        self.revised = []
        self.summarized = []
        self.fail_on = fail_on

    async def revise(self, chunk_text):
        self.revised.append(chunk_text)
        if self.fail_on and self.fail_on in chunk_text:
            raise GenerationError("boom")
        return chunk_text.upper()

    async def summarize(self, chunk_text):
        self.summarized.append(chunk_text)
        if self.fail_on and self.fail_on in chunk_text:
            raise GenerationError("boom")
        return f"summary({len(chunk_text)})"


def test_revise_sends_every_line_within_chunk_limit():
    engine = FakeEngine()

    revised = asyncio.run(revise_transcript(TRANSCRIPT, engine, max_chunk_chars=70))

    assert len(engine.revised) == 3
    assert revised == TRANSCRIPT.upper()


def test_revise_failed_chunk_keeps_original():
    engine = FakeEngine(fail_on="Bob")

    revised = asyncio.run(revise_transcript(TRANSCRIPT, engine, max_chunk_chars=70))

    lines = revised.splitlines()
    assert lines[0].startswith("[0:05] ANNA")
    assert lines[1] == "[0:40] Bob - There is a long corridor with torches on both walls."
    assert lines[2].startswith("[1:20] CARLA")


def test_revise_keeps_short_and_untimed_lines():
    text = "\n".join(
        [
            "[0:03] Bob - Let's open the door.",
            "[0:04] Anna - ok",
            "a line the recognizer wrote without a timestamp",
        ]
    )
    engine = FakeEngine()

    revised = asyncio.run(revise_transcript(text, engine, max_chunk_chars=10_000))

    assert revised == text.upper()
    assert engine.revised == [text]


def test_summary_rolls_and_compresses():
    engine = FakeEngine()
    boundaries = boundaries_from_cut_points([30, 60, 120])

    result = asyncio.run(
        summarize_transcript(TRANSCRIPT, engine, boundaries, max_chunk_chars=10_000, rolling_max_chars=20)
    )

    assert [c.scene_index for c in result.chunk_summaries] == [0, 1, 2]
    # three chunk summaries plus a compression pass once the rolling text exceeds 20 chars
    assert len(engine.summarized) > 3
    assert result.summary.startswith("summary(")
    assert result.failed_chunks == 0


def test_summary_skips_failed_chunks():
    engine = FakeEngine(fail_on="Carla")
    result = asyncio.run(
        summarize_transcript(
            TRANSCRIPT, engine, boundaries_from_cut_points([30, 60, 120]), max_chunk_chars=10_000
        )
    )
    assert result.failed_chunks == 1
    assert [c.scene_index for c in result.chunk_summaries] == [0, 1]


def test_summary_of_empty_transcript():
    result = asyncio.run(summarize_transcript("", FakeEngine()))
    assert result.summary == ""


def test_summary_of_only_short_lines_uses_the_text_as_is():
    text = "[0:03] Bob - Let's open the door.\n[0:04] Anna - ok"
    engine = FakeEngine()

    result = asyncio.run(summarize_transcript(text, engine, max_chunk_chars=10_000))

    assert engine.summarized == [text]
    assert result.summary == f"summary({len(text)})"
