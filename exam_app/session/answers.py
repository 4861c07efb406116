import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from exam_app.api.client import ApiError
from exam_app.session.addressing import QuestionResolver
from exam_app.session.models import ExamSession, QuestionKey, SessionState

logger = logging.getLogger(__name__)

SAVED = 'saved'
FAILED = 'failed'
BUSY = 'busy'
INACTIVE = 'inactive'


@dataclass
class AnswerOutcome:
    status: str
    question_key: Optional[QuestionKey] = None
    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SAVED


class AnswerRecorder:
    """Captures selections and persists them to the backend.

    A question only counts as attempted once the backend has acknowledged the
    write. While a write for a key is outstanding, further writes for that key
    are refused so the backend sees them in the order they were made.
    """

    def __init__(self, backend, session: ExamSession, resolver: QuestionResolver,
                 clock: Callable[[], float] = time.monotonic, audit_logger=None,
                 on_pending: Optional[Callable[[], None]] = None):
        self.backend = backend
        self.session = session
        self.resolver = resolver
        self.clock = clock
        self.audit_logger = audit_logger
        self.on_pending = on_pending
        self._displayed_at: Dict[int, float] = {}
        self._pending: Dict[QuestionKey, asyncio.Task] = {}

    # === Dwell time ===

    def mark_displayed(self, position: int):
        """Restart the dwell clock for a question that was just shown"""
        self._displayed_at = {position: self.clock()}

    def dwell_seconds(self, position: int) -> int:
        started = self._displayed_at.get(position)
        if started is None:
            return 0
        return max(0, int(self.clock() - started))

    # === Outstanding writes ===

    def is_pending(self, key: QuestionKey) -> bool:
        return key in self._pending

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    async def wait_idle(self):
        """Wait until every outstanding write has resolved"""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)

    # === Capture ===

    async def select_answer(self, position: int, value: str) -> AnswerOutcome:
        if self.session.state is not SessionState.IN_PROGRESS:
            return AnswerOutcome(INACTIVE, value=value)

        key = self.resolver.resolve_question_key(position)
        if self.is_pending(key):
            logger.info(f"[ANSWER] Write for {key!r} still outstanding, ignoring new selection")
            return AnswerOutcome(BUSY, key, value)

        is_current = position == self.session.current_position
        previous = self.session.selected_answer if is_current else self.session.answers.get(key)
        dwell = self.dwell_seconds(position)
        question_id = None
        if is_current and self.session.current_question is not None:
            question_id = self.session.current_question.question_id

        if is_current:
            self.session.selected_answer = value

        task = asyncio.ensure_future(
            self.backend.submit_answer(self.session.submission_id, key, value, dwell, question_id)
        )
        self._pending[key] = task
        if self.on_pending is not None:
            self.on_pending()
        try:
            await task
        except ApiError as e:
            logger.warning(f"[ANSWER] Failed to save answer for {key!r}: {e.message}")
            # Roll back only if the test-taker is still looking at this question
            if position == self.session.current_position and self.session.selected_answer == value:
                self.session.selected_answer = previous
            if self.audit_logger:
                self.audit_logger.log_answer_failure(self.session.user_id, self.session.submission_id,
                                                     key, e.message)
            return AnswerOutcome(FAILED, key, value, e.message)
        finally:
            self._pending.pop(key, None)

        self.session.answers[key] = value
        self.session.mark_attempted(key)
        if position == self.session.current_position:
            self.session.selected_answer = value
        logger.info(f"[ANSWER] Saved {value!r} for {key!r} after {dwell}s")
        if self.audit_logger:
            self.audit_logger.log_answer_save(self.session.user_id, self.session.submission_id, key, dwell)
        return AnswerOutcome(SAVED, key, value)
