import logging
from typing import Any, Dict, Optional

from exam_app.api.client import ApiError
from exam_app.session.models import CompletionResult, ExamSession, TestMode

logger = logging.getLogger(__name__)


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class ReportHandoff:
    """Turns the backend's completion response into the result the report view reads"""

    def __init__(self, backend):
        self.backend = backend

    def build_result(self, session: ExamSession, response: Optional[Dict[str, Any]]) -> CompletionResult:
        response = response or {}
        return CompletionResult(
            submission_id=session.submission_id,
            score=response.get('score'),
            total_questions=_to_int(response.get('totalQuestions'), session.total_questions),
            mode=session.mode,
        )

    async def fetch_report(self, result: CompletionResult) -> Optional[Dict[str, Any]]:
        """Load the detailed report for a finished submission; None if the backend refuses"""
        try:
            return await self.backend.fetch_report(
                result.submission_id, chapter_test=result.mode is TestMode.CHAPTER_TEST
            )
        except ApiError as e:
            logger.error(f"[REPORT] Failed to fetch report for {result.submission_id}: {e.message}")
            return None


def summary_text(result: CompletionResult) -> str:
    return f"Report generated!\nScore: {result.score}/{result.total_questions}"


def report_summary(report: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Score plus attempted, correct and wrong counts from a detailed report"""
    report = report or {}
    details = report.get('submissionDetails') or {}
    questions = report.get('questions') or []
    correct = len([q for q in questions if isinstance(q, dict) and q.get('isCorrect')])
    return {
        'score': details.get('score', report.get('score')),
        'attempted': len(questions),
        'correct': correct,
        'wrong': len(questions) - correct,
    }


def report_text(summary: Dict[str, Any]) -> str:
    return (f"Attempted: {summary['attempted']}  Correct: {summary['correct']}  "
            f"Wrong: {summary['wrong']}")
