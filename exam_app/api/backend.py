"""
Asynchronous facade over ExamApiClient.

Every backend call is a suspension point for the session controller: the
blocking HTTP request runs in a worker thread while the event loop keeps
the countdown and the UI alive. Responses are normalized into the
session models here so the controller never sees raw JSON.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from exam_app.api.client import ApiError, ExamApiClient
from exam_app.session.models import (
    ExerciseMetadata, FetchedQuestion, QuestionKey, QuestionPayload, StartedSubmission
)

logger = logging.getLogger(__name__)


def _optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _submission_id(data: Dict[str, Any]) -> str:
    submission_id = data.get('_id') or data.get('submissionId') or data.get('id')
    if not submission_id:
        raise ApiError("Backend did not return a submission id")
    return str(submission_id)


class ExamBackend:

    def __init__(self, client: Optional[ExamApiClient] = None):
        self.client = client or ExamApiClient()

    async def _call(self, func, *args):
        return await asyncio.to_thread(func, *args)

    async def start_exam(self, user_id: str, exercise_id: str, total_minutes: int) -> StartedSubmission:
        data = await self._call(self.client.start_exam, user_id, exercise_id, total_minutes)
        time_left = _optional_int(data.get('timeLeft'))
        if time_left is None:
            time_left = int(total_minutes) * 60
        return StartedSubmission(submission_id=_submission_id(data), time_remaining_seconds=time_left)

    async def start_chapter_test(self, chapter_parameters: Dict[str, Any]) -> StartedSubmission:
        data = await self._call(self.client.start_chapter_test, chapter_parameters)
        question_ids = [str(qid) for qid in (data.get('questionIds') or [])]
        time_left = _optional_int(data.get('timeLeft'))
        if time_left is None:
            time_left = _optional_int(data.get('timeRemainingSeconds'))
        return StartedSubmission(
            submission_id=_submission_id(data),
            question_ids=question_ids,
            time_remaining_seconds=time_left,
        )

    async def get_exercise(self, exercise_id: str) -> ExerciseMetadata:
        data = await self._call(self.client.get_exercise, exercise_id)
        return ExerciseMetadata.from_dict(data or {}, exercise_id)

    async def fetch_question(self, submission_id: str, key: QuestionKey,
                             exercise_id: Optional[str] = None) -> FetchedQuestion:
        if isinstance(key, int):
            data = await self._call(self.client.get_exam_question, submission_id, exercise_id, key)
        else:
            data = await self._call(self.client.get_chapter_test_question, submission_id, key)
        data = data or {}
        question = QuestionPayload.from_dict(data.get('question'))
        if question.question_index is None and isinstance(key, int):
            question.question_index = key
        return FetchedQuestion(question=question, previous_answer=data.get('userAnswer') or None)

    async def submit_answer(self, submission_id: str, key: QuestionKey, value: str,
                            dwell_seconds: int, question_id: Optional[str] = None) -> Dict:
        answer_data: Dict[str, Any] = {
            "questionId": question_id or (None if isinstance(key, int) else key),
            "userAnswer": value,
            "timeTaken": int(dwell_seconds),
        }
        if isinstance(key, int):
            answer_data["questionIndex"] = key
        return await self._call(self.client.submit_answer, submission_id, answer_data)

    async def fetch_attempted(self, submission_id: str) -> List[Dict[str, Any]]:
        data = await self._call(self.client.get_attempted_answers, submission_id)
        if isinstance(data, list):
            return data
        return list((data or {}).get('attempts') or [])

    async def pause_exam(self, submission_id: str, time_remaining_seconds: int) -> Dict:
        return await self._call(self.client.pause_exam, submission_id, int(time_remaining_seconds))

    async def resume_exam(self, submission_id: str) -> Optional[int]:
        """Re-activate the submission; returns the stored remaining time when reported"""
        data = await self._call(self.client.resume_exam, submission_id)
        if not isinstance(data, dict):
            return None
        time_left = _optional_int(data.get('timeLeft'))
        if time_left is None and isinstance(data.get('submission'), dict):
            time_left = _optional_int(data['submission'].get('timeLeft'))
        return time_left

    async def complete_exam(self, submission_id: str) -> Dict:
        return await self._call(self.client.complete_exam, submission_id) or {}

    async def fetch_report(self, submission_id: str, chapter_test: bool = False) -> Dict:
        if chapter_test:
            return await self._call(self.client.get_chapter_exam_report, submission_id)
        return await self._call(self.client.get_exam_report, submission_id)

    async def list_submissions(self) -> List[Dict[str, Any]]:
        data = await self._call(self.client.list_submissions)
        return data if isinstance(data, list) else list((data or {}).get('submissions') or [])
