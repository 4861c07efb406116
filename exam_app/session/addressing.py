"""
Question addressing.

Maps a 1-based position in the exam to the key used to fetch the question
and to track its answer. Exercise tests address questions by number;
chapter tests by the identifiers the backend handed out at start.
Navigation, progress and the question palette only ever talk to a resolver.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from exam_app.session.models import QuestionKey, TestMode


class QuestionResolver(ABC):

    @abstractmethod
    def total_questions(self) -> int:
        pass

    @abstractmethod
    def resolve_question_key(self, position: int) -> QuestionKey:
        pass

    @abstractmethod
    def key_from_attempt(self, attempt: Dict[str, Any]) -> Optional[QuestionKey]:
        """Extract the key from one record of the attempted-answers response"""
        pass

    def keys(self) -> List[QuestionKey]:
        return [self.resolve_question_key(p) for p in range(1, self.total_questions() + 1)]

    def position_of(self, key: QuestionKey) -> Optional[int]:
        for position in range(1, self.total_questions() + 1):
            if self.resolve_question_key(position) == key:
                return position
        return None

    def _check(self, position: int):
        if not 1 <= position <= self.total_questions():
            raise ValueError(f"Position {position} outside 1..{self.total_questions()}")


class SequentialResolver(QuestionResolver):
    """Exercise test: the key is the question number itself"""

    def __init__(self, question_count: int):
        if question_count < 1:
            raise ValueError(f"Exercise declares {question_count} questions")
        self._count = int(question_count)

    def total_questions(self) -> int:
        return self._count

    def resolve_question_key(self, position: int) -> QuestionKey:
        self._check(position)
        return position

    def key_from_attempt(self, attempt: Dict[str, Any]) -> Optional[QuestionKey]:
        index = attempt.get('questionIndex')
        if index is None:
            return None
        try:
            index = int(index)
        except (TypeError, ValueError):
            return None
        return index if 1 <= index <= self._count else None

    def position_of(self, key: QuestionKey) -> Optional[int]:
        if isinstance(key, int) and 1 <= key <= self._count:
            return key
        return None


class IdentifierListResolver(QuestionResolver):
    """Chapter test: the key is the identifier at ``position - 1``"""

    def __init__(self, question_ids: Sequence[str]):
        if not question_ids:
            raise ValueError("Chapter test has no questions")
        self._ids = tuple(str(qid) for qid in question_ids)
        self._positions = {qid: i + 1 for i, qid in enumerate(self._ids)}

    @property
    def question_ids(self):
        return self._ids

    def total_questions(self) -> int:
        return len(self._ids)

    def resolve_question_key(self, position: int) -> QuestionKey:
        self._check(position)
        return self._ids[position - 1]

    def key_from_attempt(self, attempt: Dict[str, Any]) -> Optional[QuestionKey]:
        question_id = attempt.get('questionId')
        if question_id is None:
            return None
        question_id = str(question_id)
        return question_id if question_id in self._positions else None

    def keys(self) -> List[QuestionKey]:
        return list(self._ids)

    def position_of(self, key: QuestionKey) -> Optional[int]:
        return self._positions.get(key)


def make_resolver(mode: TestMode, question_count: Optional[int] = None,
                  question_ids: Optional[Sequence[str]] = None) -> QuestionResolver:
    if mode is TestMode.CHAPTER_TEST:
        return IdentifierListResolver(question_ids or [])
    return SequentialResolver(question_count or 0)
