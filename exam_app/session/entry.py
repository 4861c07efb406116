from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from exam_app.config import DEFAULT_EXAM_DURATION
from exam_app.session.models import TestMode


def _first(query: Dict[str, List[str]], name: str) -> Optional[str]:
    values = query.get(name)
    if not values or not values[0].strip():
        return None
    return values[0].strip()


def _to_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _ref_id(value) -> Optional[str]:
    """Accept either a populated reference ({'_id': ...}) or a bare id"""
    if isinstance(value, dict):
        value = value.get('_id') or value.get('id')
    return str(value) if value else None


@dataclass
class SessionEntry:
    """Parameters an exam screen is opened with. Read once, never re-derived."""
    mode: TestMode
    user_id: Optional[str] = None
    exercise_id: Optional[str] = None
    chapter_id: Optional[str] = None
    submission_id: Optional[str] = None
    time_remaining_seconds: Optional[int] = None
    exam_total_minutes: Optional[int] = None
    question_ids: List[str] = field(default_factory=list)
    chapter_parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_resume(self) -> bool:
        return bool(self.submission_id)

    @property
    def display_minutes(self) -> int:
        """Exam duration shown in the header"""
        if self.exam_total_minutes:
            return int(self.exam_total_minutes)
        return int((self.time_remaining_seconds or 0) // 60)

    @classmethod
    def from_route(cls, route: str) -> "SessionEntry":
        """
        Parse an exam route such as
        ``/user/test/<exerciseId>?user=<id>&time=<seconds>&submissionId=<sid>``
        or ``/user/chapter-test/<chapterId>?user=<id>&time=<seconds>&questionIds=a,b``.
        """
        parts = urlsplit(route or '')
        query = parse_qs(parts.query)
        segments = [s for s in parts.path.split('/') if s]

        mode = TestMode.EXERCISE_TEST
        target_id = None
        for marker, marker_mode in (('chapter-test', TestMode.CHAPTER_TEST), ('test', TestMode.EXERCISE_TEST)):
            if marker in segments:
                mode = marker_mode
                idx = segments.index(marker)
                target_id = segments[idx + 1] if idx + 1 < len(segments) else None
                break

        if target_id is None:
            raise ValueError(f"Route {route!r} does not name an exercise or chapter")

        question_ids = []
        raw_ids = _first(query, 'questionIds')
        if raw_ids:
            question_ids = [qid for qid in raw_ids.split(',') if qid]

        entry = cls(
            mode=mode,
            user_id=_first(query, 'user'),
            submission_id=_first(query, 'submissionId'),
            time_remaining_seconds=_to_int(_first(query, 'time')),
            exam_total_minutes=_to_int(_first(query, 'examTotalTime')),
            question_ids=question_ids,
        )
        if mode is TestMode.CHAPTER_TEST:
            entry.chapter_id = target_id
            entry.chapter_parameters = {"chapterId": target_id, "userId": entry.user_id}
            if entry.exam_total_minutes:
                entry.chapter_parameters["totalTime"] = entry.exam_total_minutes
        else:
            entry.exercise_id = target_id
        return entry

    @classmethod
    def from_submission(cls, submission: Dict[str, Any]) -> "SessionEntry":
        """Build a resume entry from one record of the submissions list"""
        total_minutes = _to_int(submission.get('totalTime'))
        time_left = _to_int(submission.get('timeLeft'))
        if time_left is None:
            time_left = (total_minutes if total_minutes is not None else DEFAULT_EXAM_DURATION) * 60

        question_ids = [str(q) for q in (submission.get('questionIds') or [])]
        chapter_id = _ref_id(submission.get('chapterId'))
        mode = TestMode.CHAPTER_TEST if question_ids or chapter_id else TestMode.EXERCISE_TEST
        return cls(
            mode=mode,
            user_id=_ref_id(submission.get('userId')),
            exercise_id=_ref_id(submission.get('exerciseId')),
            chapter_id=chapter_id,
            submission_id=_ref_id(submission.get('_id')),
            time_remaining_seconds=time_left,
            exam_total_minutes=total_minutes,
            question_ids=question_ids,
        )

    def to_route(self) -> str:
        """Inverse of from_route, used when re-entering a paused exam"""
        if self.mode is TestMode.CHAPTER_TEST:
            path = f"/user/chapter-test/{self.chapter_id}"
        else:
            path = f"/user/test/{self.exercise_id}"
        params = []
        if self.user_id:
            params.append(f"user={self.user_id}")
        if self.time_remaining_seconds is not None:
            params.append(f"time={self.time_remaining_seconds}")
        if self.submission_id:
            params.append(f"submissionId={self.submission_id}")
        if self.exam_total_minutes:
            params.append(f"examTotalTime={self.exam_total_minutes}")
        if self.question_ids:
            params.append(f"questionIds={','.join(self.question_ids)}")
        return path + ("?" + "&".join(params) if params else "")
