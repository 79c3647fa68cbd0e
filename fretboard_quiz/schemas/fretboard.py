"""
Fretboard value types: notes, chord/interval vocabularies and positions
"""
from enum import Enum
from typing import Annotated, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

MIN_FRET = 0
MAX_FRET = 24
MIN_STRING = 1
MAX_STRING = 6

FretNumber = Annotated[int, Field(strict=True, ge=MIN_FRET, le=MAX_FRET)]
StringNumber = Annotated[int, Field(strict=True, ge=MIN_STRING, le=MAX_STRING)]


class Note(str, Enum):
    """The 12 pitch classes in sharp notation"""
    C = "C"
    C_SHARP = "C#"
    D = "D"
    D_SHARP = "D#"
    E = "E"
    F = "F"
    F_SHARP = "F#"
    G = "G"
    G_SHARP = "G#"
    A = "A"
    A_SHARP = "A#"
    B = "B"

    @property
    def pitch_class(self) -> int:
        return CHROMATIC_NOTES.index(self)

    @classmethod
    def from_pitch_class(cls, pitch_class: int) -> "Note":
        return CHROMATIC_NOTES[pitch_class % 12]


CHROMATIC_NOTES: Tuple[Note, ...] = tuple(Note)


class ChordType(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"
    AUGMENTED = "augmented"


class Interval(str, Enum):
    """Intervals within one octave"""
    MINOR_2ND = "minor_2nd"
    MAJOR_2ND = "major_2nd"
    MINOR_3RD = "minor_3rd"
    MAJOR_3RD = "major_3rd"
    PERFECT_4TH = "perfect_4th"
    TRITONE = "tritone"
    PERFECT_5TH = "perfect_5th"
    MINOR_6TH = "minor_6th"
    MAJOR_6TH = "major_6th"
    MINOR_7TH = "minor_7th"
    MAJOR_7TH = "major_7th"
    OCTAVE = "octave"

    @property
    def semitones(self) -> int:
        return list(Interval).index(self) + 1


# Open-string pitch classes in standard tuning, string 1 = high E
STANDARD_TUNING: Dict[int, Note] = {
    1: Note.E,
    2: Note.B,
    3: Note.G,
    4: Note.D,
    5: Note.A,
    6: Note.E,
}


def pitch_class_at(string_number: int, fret: int) -> Note:
    """Pitch class sounding at (string, fret) in standard tuning"""
    if not MIN_STRING <= string_number <= MAX_STRING:
        raise ValueError(f"string_number must be between {MIN_STRING} and {MAX_STRING}")
    if not MIN_FRET <= fret <= MAX_FRET:
        raise ValueError(f"fret must be between {MIN_FRET} and {MAX_FRET}")
    open_note = STANDARD_TUNING[string_number]
    return Note.from_pitch_class(open_note.pitch_class + fret)


class FretPosition(BaseModel):
    """A (string, fret) coordinate on the neck"""
    model_config = ConfigDict(frozen=True)

    fret: FretNumber
    string: StringNumber

    @property
    def note(self) -> Note:
        return pitch_class_at(self.string, self.fret)
