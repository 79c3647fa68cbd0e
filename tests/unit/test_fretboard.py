"""
Unit tests for fretboard positions and note vocabularies.
"""

import pytest
from pydantic import ValidationError

from fretboard_quiz.schemas.fretboard import (
    CHROMATIC_NOTES,
    FretPosition,
    Interval,
    Note,
    pitch_class_at,
)


class TestPitchClassAt:
    """Standard tuning, string 1 = high E."""

    @pytest.mark.parametrize("string_number,fret,expected", [
        (1, 0, Note.E),
        (2, 1, Note.C),
        (3, 2, Note.A),
        (4, 0, Note.D),
        (5, 3, Note.C),
        (6, 5, Note.A),
        (1, 12, Note.E),
        (3, 24, Note.G),
        (6, 1, Note.F),
    ])
    def test_lookup(self, string_number, fret, expected):
        assert pitch_class_at(string_number, fret) == expected

    @pytest.mark.parametrize("string_number,fret", [(0, 0), (7, 3), (1, -1), (1, 25)])
    def test_out_of_range(self, string_number, fret):
        with pytest.raises(ValueError):
            pitch_class_at(string_number, fret)


class TestNote:

    def test_twelve_pitch_classes_from_c(self):
        assert len(CHROMATIC_NOTES) == 12
        assert CHROMATIC_NOTES[0] == Note.C
        assert [note.value for note in CHROMATIC_NOTES][:3] == ["C", "C#", "D"]

    def test_pitch_class_round_trip_wraps(self):
        assert Note.C_SHARP.pitch_class == 1
        assert Note.from_pitch_class(13) == Note.C_SHARP
        assert Note.from_pitch_class(11) == Note.B


class TestInterval:

    def test_semitones(self):
        assert Interval.MINOR_2ND.semitones == 1
        assert Interval.TRITONE.semitones == 6
        assert Interval.PERFECT_5TH.semitones == 7
        assert Interval.OCTAVE.semitones == 12


class TestFretPosition:

    def test_note(self):
        assert FretPosition(fret=3, string=5).note == Note.C

    def test_value_equality(self):
        assert FretPosition(fret=7, string=2) == FretPosition(fret=7, string=2)
        assert len({FretPosition(fret=7, string=2), FretPosition(fret=7, string=2)}) == 1

    def test_immutable(self):
        position = FretPosition(fret=0, string=1)
        with pytest.raises(ValidationError):
            position.fret = 5

    @pytest.mark.parametrize("fret,string", [(25, 1), (0, 7), ("3", 5)])
    def test_invalid(self, fret, string):
        with pytest.raises(ValidationError):
            FretPosition(fret=fret, string=string)
