import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from exam_app.session.addressing import QuestionResolver
from exam_app.session.models import ExerciseMetadata, QuestionKey, RangeText

CURRENT = 'current'
ANSWERED = 'answered'
UNVISITED = 'unvisited'


def clamp_position(position: int, total: int) -> int:
    """Clamp a navigation target into [1, total]"""
    return max(1, min(int(position), int(total)))


def progress_percent(position: int, total: int) -> int:
    """Percentage of the way through the exam, rounded half up"""
    if total <= 0:
        return 0
    return int(math.floor(position * 100 / total + 0.5))


@dataclass
class PaletteEntry:
    position: int
    key: QuestionKey
    state: str


def palette(resolver: QuestionResolver, attempted: Dict[QuestionKey, bool],
            current_position: int) -> List[PaletteEntry]:
    """Question overview grid: current > answered > unvisited"""
    entries = []
    for position, key in enumerate(resolver.keys(), start=1):
        if position == current_position:
            state = CURRENT
        elif attempted.get(key):
            state = ANSWERED
        else:
            state = UNVISITED
        entries.append(PaletteEntry(position, key, state))
    return entries


def answered_count(resolver: QuestionResolver, attempted: Dict[QuestionKey, bool]) -> int:
    return sum(1 for key in resolver.keys() if attempted.get(key))


def range_entry_for(position: int, items: Sequence[RangeText]) -> Optional[RangeText]:
    for item in items:
        if item.covers(position):
            return item
    return None


@dataclass
class QuestionContext:
    direction: Optional[RangeText] = None
    header: Optional[str] = None
    section: Optional[str] = None


def context_for(position: int, exercise: Optional[ExerciseMetadata]) -> QuestionContext:
    """Direction, header and section text that apply to a question position"""
    if exercise is None:
        return QuestionContext()
    header = range_entry_for(position, exercise.headers)
    section = range_entry_for(position, exercise.sections)
    return QuestionContext(
        direction=range_entry_for(position, exercise.directions),
        header=header.text if header else None,
        section=section.text if section else None,
    )
