"""Unit tests for TurnReconciler and PauseGate."""

import pytest
from unittest.mock import MagicMock

from shadowscribe.models.transcription import TranscriptSnapshot, WordResult
from shadowscribe.transcription.messages import TurnMessage, VendorWord
from shadowscribe.transcription.pause_gate import PauseGate
from shadowscribe.transcription.reconciler import TurnReconciler


def turn(transcript=None, words=None, formatted=False, end_of_turn=False, order=0):
    return TurnMessage(
        type="Turn",
        turn_order=order,
        turn_is_formatted=formatted,
        end_of_turn=end_of_turn,
        transcript=transcript,
        words=words or [],
    )


def contents(words):
    return [w.content for w in words]


@pytest.fixture
def on_update():
    return MagicMock()


@pytest.fixture
def reconciler(on_update):
    return TurnReconciler(pause_gate=PauseGate(), on_update=on_update)


@pytest.mark.unit
class TestConvertTurn:

    def test_word_entries_converted_to_seconds(self, reconciler):
        message = turn(words=[
            VendorWord(text="hello", start=1200, end=1500, confidence=0.91, speaker="A"),
            VendorWord(text="there", start=1550, end=1900, confidence=0.88),
        ])

        results = reconciler.convert_turn(message)

        assert results[0] == WordResult("hello", 1.2, 1.5, 0.91, "A")
        assert results[1].speaker == "S1"
        assert results[1].start_time == pytest.approx(1.55)

    def test_plain_transcript_gets_synthesized_timing(self, reconciler):
        results = reconciler.convert_turn(turn(transcript="  one two   three "))

        assert contents(results) == ["one", "two", "three"]
        assert [r.start_time for r in results] == pytest.approx([0.0, 0.1, 0.2])
        assert [r.end_time for r in results] == pytest.approx([0.1, 0.2, 0.3])
        assert all(r.confidence == 0.95 for r in results)
        assert all(r.speaker == "S1" for r in results)

    def test_empty_transcript_gives_no_words(self, reconciler):
        assert reconciler.convert_turn(turn(transcript="")) == []
        assert reconciler.convert_turn(turn()) == []

    def test_custom_default_speaker(self):
        reconciler = TurnReconciler(default_speaker="Speaker 1")
        assert reconciler.convert_turn(turn(transcript="hi"))[0].speaker == "Speaker 1"


@pytest.mark.unit
class TestApplyTurn:

    def test_partial_turns_replace_each_other(self, reconciler):
        reconciler.apply_turn(turn("hello"))
        reconciler.apply_turn(turn("hello wor"))

        assert contents(reconciler.partial) == ["hello", "wor"]
        assert reconciler.finalized == ()
        assert reconciler.transcript_text == ""

    def test_final_turn_appends_and_clears_partial(self, reconciler):
        reconciler.apply_turn(turn("hello wor"))
        reconciler.apply_turn(turn("Hello world.", formatted=True))

        assert reconciler.partial == ()
        assert contents(reconciler.finalized) == ["Hello", "world."]
        assert reconciler.transcript_text == "Hello world."

    def test_end_of_turn_without_formatting_is_final(self, reconciler):
        reconciler.apply_turn(turn("unformatted words", end_of_turn=True))
        assert reconciler.transcript_text == "unformatted words"

    def test_finalized_grows_across_turns(self, reconciler):
        reconciler.apply_turn(turn("First turn.", formatted=True, order=0))
        reconciler.apply_turn(turn("second", order=1))
        reconciler.apply_turn(turn("Second turn.", formatted=True, order=1))

        assert reconciler.transcript_text == "First turn. Second turn."
        assert reconciler.turns_applied == 3

    def test_empty_final_turn_clears_partial(self, reconciler):
        reconciler.apply_turn(turn("um"))
        reconciler.apply_turn(turn("", end_of_turn=True))

        assert reconciler.partial == ()
        assert reconciler.finalized == ()

    def test_every_mutation_notifies(self, reconciler, on_update):
        reconciler.apply_turn(turn("hello"))
        reconciler.apply_turn(turn("Hello.", formatted=True))

        assert on_update.call_count == 2
        snapshot = on_update.call_args[0][0]
        assert isinstance(snapshot, TranscriptSnapshot)
        assert snapshot.text == "Hello."
        assert snapshot.partial == ()

    def test_paused_turns_are_dropped(self, reconciler, on_update):
        reconciler.apply_turn(turn("kept", formatted=True))
        reconciler.pause_gate.pause()

        assert reconciler.apply_turn(turn("dropped words", formatted=True)) is False
        assert reconciler.apply_turn(turn("dropped")) is False

        assert reconciler.transcript_text == "kept"
        assert reconciler.partial == ()
        assert reconciler.turns_dropped == 2
        assert on_update.call_count == 1

        reconciler.pause_gate.resume()
        assert reconciler.apply_turn(turn("after", formatted=True)) is True
        assert reconciler.transcript_text == "kept after"

    def test_paused_final_turn_leaves_partial_untouched(self, reconciler, on_update):
        reconciler.apply_turn(turn("Settled.", formatted=True))
        reconciler.apply_turn(turn("still speaking"))
        partial_before = reconciler.partial
        finalized_before = reconciler.snapshot().finalized
        reconciler.pause_gate.pause()

        assert reconciler.apply_turn(turn("Still speaking now.", formatted=True)) is False
        assert reconciler.apply_turn(turn("ignored", end_of_turn=True)) is False

        assert contents(partial_before) == ["still", "speaking"]
        assert reconciler.partial == partial_before
        assert reconciler.snapshot().finalized == finalized_before
        assert reconciler.transcript_text == "Settled."
        assert on_update.call_count == 2


@pytest.mark.unit
class TestBufferOperations:

    def test_flush_partial_moves_words(self, reconciler, on_update):
        reconciler.apply_turn(turn("Done.", formatted=True))
        reconciler.apply_turn(turn("pending words"))

        assert reconciler.flush_partial() == 2
        assert reconciler.partial == ()
        assert reconciler.transcript_text == "Done. pending words"
        assert on_update.call_count == 3

    def test_flush_with_nothing_pending(self, reconciler, on_update):
        assert reconciler.flush_partial() == 0
        on_update.assert_not_called()

    def test_clear_partial(self, reconciler):
        reconciler.apply_turn(turn("Kept.", formatted=True))
        reconciler.apply_turn(turn("gone"))

        reconciler.clear_partial()

        assert reconciler.partial == ()
        assert reconciler.transcript_text == "Kept."

    def test_load_saved_transcript_replaces_finalized(self, reconciler):
        reconciler.apply_turn(turn("old text", formatted=True))
        reconciler.apply_turn(turn("partial"))
        saved = [WordResult("Saved", 0.0, 0.4, 0.9), WordResult("words.", 0.4, 0.8, 0.9)]

        reconciler.load_saved_transcript(saved)

        assert list(reconciler.finalized) == saved
        assert reconciler.partial == ()
        assert reconciler.transcript_text == "Saved words."

    def test_reset(self, reconciler):
        reconciler.apply_turn(turn("Some text.", formatted=True))
        reconciler.apply_turn(turn("more"))

        reconciler.reset()

        assert reconciler.snapshot() == TranscriptSnapshot()

    def test_snapshots_are_immutable(self, reconciler):
        reconciler.apply_turn(turn("Hello.", formatted=True))
        snapshot = reconciler.snapshot()
        reconciler.apply_turn(turn("More.", formatted=True))

        assert contents(snapshot.finalized) == ["Hello."]
        assert isinstance(snapshot.finalized, tuple)


@pytest.mark.unit
class TestPauseGate:

    def test_toggle(self):
        gate = PauseGate()
        assert gate.is_paused is False
        gate.pause()
        gate.pause()
        assert gate.is_paused is True
        gate.resume()
        assert gate.is_paused is False

    def test_initially_paused(self):
        assert PauseGate(paused=True).is_paused
