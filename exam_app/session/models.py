from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from exam_app.config import OPTION_LETTERS

QuestionKey = Union[int, str]


class TestMode(Enum):
    EXERCISE_TEST = "exercise_test"
    CHAPTER_TEST = "chapter_test"


class SessionState(Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class InvalidTransition(Exception):
    """Raised when a lifecycle operation is requested from a state that does not allow it"""


def option_letter(index: int) -> str:
    if index < len(OPTION_LETTERS):
        return OPTION_LETTERS[index]
    return f"({chr(65 + index)})"


@dataclass
class RangeText:
    """Text (and optional image) shown for every question in [start, end]"""
    start: int
    end: int
    text: Optional[str] = None
    image_path: Optional[str] = None

    def covers(self, position: int) -> bool:
        return self.start <= position <= self.end

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RangeText":
        return cls(
            start=int(data.get('start', 0)),
            end=int(data.get('end', 0)),
            text=data.get('text'),
            image_path=data.get('imagePath'),
        )


@dataclass
class ExerciseMetadata:
    exercise_id: str
    question_count: int
    title: str = ""
    directions: List[RangeText] = field(default_factory=list)
    headers: List[RangeText] = field(default_factory=list)
    sections: List[RangeText] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], exercise_id: Optional[str] = None) -> "ExerciseMetadata":
        def ranges(name):
            return [RangeText.from_dict(item) for item in (data.get(name) or [])]

        title_parts = [data.get(part) for part in ('subject', 'source', 'chapter') if data.get(part)]
        return cls(
            exercise_id=str(exercise_id or data.get('_id') or data.get('id') or ''),
            question_count=int(data.get('questionCount') or 0),
            title=data.get('title') or " - ".join(str(p) for p in title_parts),
            directions=ranges('directions'),
            headers=ranges('headers'),
            sections=ranges('sections'),
        )


@dataclass
class QuestionPayload:
    question_id: Optional[str] = None
    question_index: Optional[int] = None
    text: str = ""
    options: List[str] = field(default_factory=list)
    option_type: Optional[str] = None
    grid_options: List[List[str]] = field(default_factory=list)
    image_path: Optional[str] = None
    sub_question: Optional[str] = None

    @property
    def is_grid(self) -> bool:
        return self.option_type == "grid" and len(self.grid_options) > 0

    def answer_choices(self) -> List[str]:
        """Selectable answer values for this question"""
        if self.is_grid:
            # First grid row is the header
            return [option_letter(i) for i in range(len(self.grid_options) - 1)]
        if self.options:
            return [option_letter(i) for i in range(len(self.options))]
        return list(OPTION_LETTERS)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "QuestionPayload":
        data = data or {}
        index = data.get('questionIndex')
        return cls(
            question_id=data.get('_id') or data.get('id'),
            question_index=int(index) if index is not None else None,
            text=data.get('question') or "",
            options=list(data.get('options') or []),
            option_type=data.get('optionType'),
            grid_options=[list(row) for row in (data.get('gridOptions') or [])],
            image_path=data.get('imagePath'),
            sub_question=data.get('subQuestion'),
        )


@dataclass
class FetchedQuestion:
    question: QuestionPayload
    previous_answer: Optional[str] = None


@dataclass
class StartedSubmission:
    submission_id: str
    question_ids: List[str] = field(default_factory=list)
    time_remaining_seconds: Optional[int] = None


@dataclass
class CompletionResult:
    submission_id: str
    score: Any
    total_questions: int
    mode: TestMode


class ExamSession:
    """In-memory state of one exam attempt.

    ``submission_id``, ``mode`` and ``total_questions`` are fixed at construction.
    """

    def __init__(self, submission_id: str, mode: TestMode, total_questions: int,
                 time_remaining_seconds: int, user_id: Optional[str] = None,
                 exercise: Optional[ExerciseMetadata] = None,
                 exam_total_minutes: Optional[int] = None):
        if total_questions < 1:
            raise ValueError(f"An exam needs at least one question, got {total_questions}")
        self._submission_id = submission_id
        self._mode = mode
        self._total_questions = total_questions
        self.user_id = user_id
        self.exercise = exercise
        self.exam_total_minutes = exam_total_minutes

        self.current_position = 1
        self.time_remaining_seconds = max(0, int(time_remaining_seconds))
        self.state = SessionState.LOADING
        self.attempted: Dict[QuestionKey, bool] = {}
        self.answers: Dict[QuestionKey, str] = {}
        self.current_question: Optional[QuestionPayload] = None
        self.selected_answer: Optional[str] = None

    @property
    def submission_id(self) -> str:
        return self._submission_id

    @property
    def mode(self) -> TestMode:
        return self._mode

    @property
    def total_questions(self) -> int:
        return self._total_questions

    def mark_attempted(self, key: QuestionKey):
        self.attempted[key] = True

    def is_attempted(self, key: QuestionKey) -> bool:
        return self.attempted.get(key, False)
