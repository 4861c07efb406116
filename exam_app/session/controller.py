"""
Exam session lifecycle.

Drives one attempt through Loading -> InProgress <-> Paused -> Completed.
This is the only place allowed to pause, resume or submit a session; the
countdown, the full-screen guard and answer persistence are sequenced from
here. Everything runs on a single asyncio loop: backend calls are the
suspension points, and all state changes happen between them.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from exam_app.api.client import ApiError
from exam_app.config import DEFAULT_EXAM_DURATION, FULLSCREEN_EXIT_POLICY, TIME_WARNINGS, TIMER_TICK_SECONDS
from exam_app.session.addressing import QuestionResolver, make_resolver
from exam_app.session.answers import INACTIVE, FAILED, AnswerOutcome, AnswerRecorder
from exam_app.session.entry import SessionEntry
from exam_app.session.models import (
    CompletionResult, ExamSession, ExerciseMetadata, InvalidTransition, SessionState, StartedSubmission,
    TestMode
)
from exam_app.session.navigation import (
    PaletteEntry, QuestionContext, answered_count, clamp_position, context_for, palette, progress_percent
)
from exam_app.session.report import ReportHandoff
from exam_app.session.timer import CountdownTimer
from exam_app.utils.logging_config import get_audit_logger

logger = logging.getLogger(__name__)

PAUSED_EXIT = 'paused'
COMPLETED_EXIT = 'completed'


class ExamSessionController:

    def __init__(self, backend, entry: SessionEntry, guard=None, audit_logger=None,
                 clock: Callable[[], float] = time.monotonic,
                 tick_interval: Optional[float] = TIMER_TICK_SECONDS,
                 fullscreen_exit_policy=FULLSCREEN_EXIT_POLICY):
        self.backend = backend
        self.entry = entry
        self.guard = guard
        self.audit_logger = audit_logger or get_audit_logger()
        self.clock = clock
        self.tick_interval = tick_interval
        self.fullscreen_exit_policy = fullscreen_exit_policy
        self.report = ReportHandoff(backend)

        self.session: Optional[ExamSession] = None
        self.resolver: Optional[QuestionResolver] = None
        self.recorder: Optional[AnswerRecorder] = None
        self.timer: Optional[CountdownTimer] = None
        self.result: Optional[CompletionResult] = None
        self.last_error: Optional[str] = None
        self.fullscreen_exits = 0

        self._state = SessionState.LOADING
        self._loading = False
        self._completing = False
        self._transition_busy = False
        self._resumed = False
        self._started: Optional[StartedSubmission] = None
        self._initial_seconds = 0
        self._fetch_token = 0
        self._tick_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        # Observers (set by the view)
        self.on_change: Optional[Callable[[], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_warning: Optional[Callable[[int], None]] = None
        self.on_exit: Optional[Callable[[str], None]] = None
        self.on_complete: Optional[Callable[[CompletionResult], None]] = None

        if self.guard is not None:
            self.guard.subscribe(self._on_fullscreen_change)

    # === Read-only view of the session ===

    @property
    def state(self) -> SessionState:
        return self.session.state if self.session is not None else self._state

    @property
    def mode(self) -> TestMode:
        return self.session.mode if self.session is not None else self.entry.mode

    @property
    def is_completing(self) -> bool:
        return self._completing

    @property
    def can_submit(self) -> bool:
        return (self.state is SessionState.IN_PROGRESS and not self._completing
                and not self._transition_busy
                and not (self.recorder is not None and self.recorder.has_pending))

    @property
    def current_answer_pending(self) -> bool:
        """True while the answer for the question on screen is still being saved"""
        if self.session is None or self.recorder is None:
            return False
        key = self.resolver.resolve_question_key(self.session.current_position)
        return self.recorder.is_pending(key)

    @property
    def time_remaining(self) -> int:
        if self.session is None:
            return 0
        return self.session.time_remaining_seconds

    @property
    def progress(self) -> int:
        if self.session is None:
            return 100 if self.state is SessionState.COMPLETED else 0
        return progress_percent(self.session.current_position, self.session.total_questions)

    @property
    def is_fullscreen(self) -> bool:
        return bool(self.guard is not None and self.guard.is_engaged)

    def question_palette(self) -> List[PaletteEntry]:
        if self.session is None:
            return []
        return palette(self.resolver, self.session.attempted, self.session.current_position)

    def question_context(self) -> QuestionContext:
        if self.session is None:
            return QuestionContext()
        return context_for(self.session.current_position, self.session.exercise)

    def submission_summary(self) -> Dict[str, int]:
        """Counts shown in the submit confirmation prompt"""
        if self.session is None:
            return {'answered': 0, 'total': 0, 'unanswered': 0}
        answered = answered_count(self.resolver, self.session.attempted)
        total = self.session.total_questions
        return {'answered': answered, 'total': total, 'unanswered': total - answered}

    # === Loading -> InProgress ===

    async def load(self) -> bool:
        """Create or re-open the submission and show the first question"""
        if self.state is not SessionState.LOADING or self._loading:
            raise InvalidTransition(f"Cannot load a session in state {self.state.value}")
        self._loading = True
        self._loop = asyncio.get_running_loop()
        try:
            if self.session is None:
                await self._open_submission()
            if self.session.current_question is None and not await self._fetch_current():
                return False
        except ApiError as e:
            self._report_error(f"Failed to load exam: {e.message}")
            return False
        except ValueError as e:
            self._report_error(f"Failed to load exam: {e}")
            return False
        finally:
            self._loading = False

        self._activate(self._initial_seconds)
        self.audit_logger.log_exam_start(
            self.session.user_id, self.session.submission_id, self.session.mode.value,
            self.session.total_questions, self.session.time_remaining_seconds, resumed=self._resumed
        )
        logger.info(f"[SESSION] Submission {self.session.submission_id} in progress "
                    f"({self.session.total_questions} questions, {self.session.time_remaining_seconds}s left)")
        self._notify_change()
        return True

    async def _open_submission(self):
        entry = self.entry
        exercise: Optional[ExerciseMetadata] = None
        question_ids = list(entry.question_ids)
        seconds = entry.time_remaining_seconds

        if entry.is_resume:
            submission_id = entry.submission_id
            if entry.mode is TestMode.CHAPTER_TEST and not question_ids:
                raise ValueError("a chapter test can only be resumed with its question list")
            reported = await self.backend.resume_exam(submission_id)
            if reported is not None:
                seconds = reported
            self._resumed = True
        else:
            # Kept across load retries so the backend only ever sees one start
            if self._started is None:
                if entry.mode is TestMode.CHAPTER_TEST:
                    self._started = await self.backend.start_chapter_test(entry.chapter_parameters)
                else:
                    minutes = entry.exam_total_minutes or DEFAULT_EXAM_DURATION
                    self._started = await self.backend.start_exam(entry.user_id, entry.exercise_id, minutes)
                logger.info(f"[SESSION] Started submission {self._started.submission_id}")
            started = self._started
            submission_id = started.submission_id
            if entry.mode is TestMode.CHAPTER_TEST:
                question_ids = started.question_ids
            if seconds is None:
                seconds = started.time_remaining_seconds

        if entry.mode is TestMode.EXERCISE_TEST:
            exercise = await self.backend.get_exercise(entry.exercise_id)

        if seconds is None:
            minutes = entry.exam_total_minutes or DEFAULT_EXAM_DURATION
            seconds = int(minutes) * 60

        resolver = make_resolver(
            entry.mode,
            question_count=exercise.question_count if exercise else None,
            question_ids=question_ids,
        )
        session = ExamSession(
            submission_id=submission_id,
            mode=entry.mode,
            total_questions=resolver.total_questions(),
            time_remaining_seconds=seconds,
            user_id=entry.user_id,
            exercise=exercise,
            exam_total_minutes=entry.exam_total_minutes,
        )
        self.resolver = resolver
        self.session = session
        self.recorder = AnswerRecorder(self.backend, session, resolver, clock=self.clock,
                                       audit_logger=self.audit_logger,
                                       on_pending=self._notify_change)
        self._initial_seconds = session.time_remaining_seconds

        if self._resumed:
            await self._restore_attempted()

    async def _restore_attempted(self):
        """Rebuild the attempted map and move to the furthest attempted question"""
        try:
            records = await self.backend.fetch_attempted(self.session.submission_id)
        except ApiError as e:
            logger.warning(f"[SESSION] Could not load attempted answers: {e.message}")
            self._report_error(f"Could not restore previous answers: {e.message}")
            return

        furthest = None
        for record in records:
            key = self.resolver.key_from_attempt(record)
            if key is None:
                continue
            self.session.mark_attempted(key)
            position = self.resolver.position_of(key)
            if position is not None and (furthest is None or position > furthest):
                furthest = position
        if furthest is not None:
            self.session.current_position = clamp_position(furthest, self.session.total_questions)
        logger.info(f"[SESSION] Restored {len(self.session.attempted)} attempted answers, "
                    f"resuming at question {self.session.current_position}")

    # === InProgress -> Paused ===

    async def pause(self) -> bool:
        """Persist the remaining time and leave the exam view"""
        if self.state is not SessionState.IN_PROGRESS:
            raise InvalidTransition(f"Cannot pause a session in state {self.state.value}")
        if self._completing or self._transition_busy:
            return False

        self._transition_busy = True
        session = self.session
        remaining = self.timer.stop()
        self._stop_ticking()
        session.time_remaining_seconds = remaining
        session.state = SessionState.PAUSED
        self._release_guard()
        self._notify_change()
        try:
            await self.backend.pause_exam(session.submission_id, remaining)
        except ApiError as e:
            if self.session is not session:
                return False
            self.audit_logger.log_exam_pause(session.user_id, session.submission_id, remaining,
                                             success=False, reason=e.message)
            session.state = SessionState.IN_PROGRESS
            self._activate(remaining)
            self._report_error(f"Failed to pause exam: {e.message}")
            return False
        finally:
            self._transition_busy = False

        if self.session is not session:
            return False
        self.audit_logger.log_exam_pause(session.user_id, session.submission_id, remaining)
        logger.info(f"[SESSION] Paused with {remaining}s remaining")
        self._notify_change()
        self._notify(self.on_exit, PAUSED_EXIT)
        return True

    # === Paused -> InProgress ===

    async def resume(self) -> bool:
        """Re-activate the submission and continue from the backend's stored time"""
        if self.state is not SessionState.PAUSED:
            raise InvalidTransition(f"Cannot resume a session in state {self.state.value}")
        if self._transition_busy or self._completing:
            return False

        self._transition_busy = True
        session = self.session
        try:
            reported = await self.backend.resume_exam(session.submission_id)
        except ApiError as e:
            self._report_error(f"Failed to resume exam: {e.message}")
            return False
        finally:
            self._transition_busy = False

        if self.session is not session or session.state is not SessionState.PAUSED:
            return False
        seconds = reported if reported is not None else session.time_remaining_seconds
        self._activate(seconds)
        self.audit_logger.log_exam_resume(session.user_id, session.submission_id,
                                          session.time_remaining_seconds)
        logger.info(f"[SESSION] Resumed with {session.time_remaining_seconds}s remaining")
        self._notify_change()
        return True

    # === * -> Completed ===

    async def submit(self, automatic: bool = False) -> Optional[CompletionResult]:
        """Complete the submission. Duplicate calls while one is in flight are ignored."""
        if self._completing or self.state is SessionState.COMPLETED:
            logger.info("[SESSION] Submission already in progress, ignoring")
            return None
        if self.state is SessionState.LOADING:
            raise InvalidTransition("Cannot submit a session that has not started")
        if self._transition_busy:
            logger.info("[SESSION] Pause or resume in progress, ignoring submit")
            return None

        self._completing = True
        session = self.session
        previous_state = session.state
        self._notify_change()

        # No completion while an answer write is still outstanding
        await self.recorder.wait_idle()

        remaining = self.timer.stop() if self.timer is not None else session.time_remaining_seconds
        self._stop_ticking()
        session.time_remaining_seconds = remaining
        self._release_guard()
        try:
            response = await self.backend.complete_exam(session.submission_id)
        except ApiError as e:
            self._completing = False
            if previous_state is SessionState.IN_PROGRESS:
                if remaining > 0:
                    self._activate(remaining)
                else:
                    self._engage_guard()
            self._report_error(f"Error completing exam: {e.message}")
            return None

        result = self.report.build_result(session, response)
        session.state = SessionState.COMPLETED
        self._state = SessionState.COMPLETED
        self.result = result
        self.audit_logger.log_exam_submit(session.user_id, session.submission_id, result.score,
                                          result.total_questions, automatic)
        logger.info(f"[SESSION] Completed {session.submission_id}: {result.score}/{result.total_questions}")

        self._discard_session()
        self._notify_change()
        self._notify(self.on_complete, result)
        self._notify(self.on_exit, COMPLETED_EXIT)
        return result

    def _discard_session(self):
        self.session = None
        self.recorder = None
        self.timer = None
        self.detach()

    def detach(self):
        """Stop reacting to the shared window once this view is gone"""
        self._stop_ticking()
        if self.guard is not None:
            self.guard.unsubscribe(self._on_fullscreen_change)
            self.guard.detach()

    # === Answers ===

    async def select_answer(self, position: int, value: str) -> AnswerOutcome:
        if self.session is None or self._completing:
            return AnswerOutcome(INACTIVE, value=value)
        position = clamp_position(position, self.session.total_questions)
        outcome = await self.recorder.select_answer(position, value)
        if outcome.status == FAILED:
            self._report_error(f"Failed to save answer: {outcome.error}")
        self._notify_change()
        return outcome

    # === Navigation ===

    async def go_to_next(self) -> bool:
        if self.session is None:
            return False
        return await self.jump_to(self.session.current_position + 1)

    async def go_to_previous(self) -> bool:
        if self.session is None:
            return False
        return await self.jump_to(self.session.current_position - 1)

    async def jump_to(self, position: int) -> bool:
        """Move the cursor (clamped) and fetch the question shown there"""
        if self.state is not SessionState.IN_PROGRESS or self._completing:
            return False
        session = self.session
        target = clamp_position(position, session.total_questions)
        if target == session.current_position:
            return False
        session.current_position = target
        session.current_question = None
        session.selected_answer = None
        self._notify_change()
        return await self._fetch_current()

    async def reload_question(self) -> bool:
        if self.session is None:
            return False
        return await self._fetch_current()

    async def _fetch_current(self) -> bool:
        self._fetch_token += 1
        token = self._fetch_token
        session = self.session
        position = session.current_position
        key = self.resolver.resolve_question_key(position)
        try:
            fetched = await self.backend.fetch_question(session.submission_id, key, self.entry.exercise_id)
        except ApiError as e:
            if token == self._fetch_token:
                self._report_error(f"Failed to load question {position}: {e.message}")
            return False

        if token != self._fetch_token or self.session is not session or session.current_position != position:
            logger.debug(f"[NAV] Dropping stale question {position}")
            return False

        session.current_question = fetched.question
        if fetched.previous_answer:
            session.answers[key] = fetched.previous_answer
        session.selected_answer = fetched.previous_answer or session.answers.get(key)
        self.recorder.mark_displayed(position)
        self._notify_change()
        return True

    # === Countdown ===

    async def handle_tick(self):
        """One second of exam time. No-op unless the session is actively running."""
        if self.state is not SessionState.IN_PROGRESS or self._completing or self.timer is None:
            return
        was_expired = self.timer.expired
        remaining = self.timer.tick()
        self.session.time_remaining_seconds = remaining
        if remaining in TIME_WARNINGS:
            logger.info(f"[TIMER] Warning: {remaining // 60} minutes remaining!")
            self._notify(self.on_warning, remaining)
        self._notify_change()
        if self.timer.expired and not was_expired:
            logger.info("[TIMER] Time's up! Auto-submitting exam...")
            await self.submit(automatic=True)

    async def _run_countdown(self):
        me = asyncio.current_task()
        try:
            while self._tick_task is me:
                await asyncio.sleep(self.tick_interval)
                if self._tick_task is not me:
                    break
                await self.handle_tick()
        except asyncio.CancelledError:
            pass
        finally:
            logger.debug("[TIMER] Countdown task stopped")

    def _start_ticking(self):
        self._stop_ticking()
        if self.tick_interval is None:
            return
        self._tick_task = asyncio.get_running_loop().create_task(self._run_countdown())

    def _stop_ticking(self):
        task = self._tick_task
        self._tick_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _activate(self, seconds: int):
        """Enter InProgress with a fresh countdown seeded from ``seconds``"""
        self.timer = CountdownTimer(on_expired=lambda: logger.info("[TIMER] Countdown reached zero"))
        self.timer.start(seconds)
        self.session.time_remaining_seconds = self.timer.remaining
        self.session.state = SessionState.IN_PROGRESS
        self._start_ticking()
        self._engage_guard()

    # === Proctoring ===

    def _engage_guard(self):
        if self.guard is None:
            return
        if not self.guard.engage():
            session = self.session
            self.audit_logger.log_fullscreen_unavailable(
                session.user_id if session else None,
                session.submission_id if session else None,
                "full-screen request refused or unsupported"
            )

    def _release_guard(self):
        if self.guard is not None:
            self.guard.release()

    def _on_fullscreen_change(self, engaged: bool):
        self._notify_change()
        if engaged or self.state is not SessionState.IN_PROGRESS or self._completing or self._transition_busy:
            return
        self.fullscreen_exits += 1
        self.audit_logger.log_fullscreen_exit(self.session.user_id, self.session.submission_id,
                                              self.fullscreen_exits)
        policy = self.fullscreen_exit_policy
        if callable(policy):
            policy(self)
        elif policy == 'reengage':
            logger.info("[FULLSCREEN] Fullscreen exit detected - re-enabling lock")
            self._engage_guard()
        elif policy == 'pause':
            logger.info("[FULLSCREEN] Fullscreen exit detected - pausing exam")
            self._schedule(self.pause())

    def _schedule(self, coro):
        loop = self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if loop is None or running is loop:
            asyncio.ensure_future(coro)
        else:
            asyncio.run_coroutine_threadsafe(coro, loop)

    # === Observers ===

    def _report_error(self, message: str):
        self.last_error = message
        logger.error(f"[SESSION] {message}")
        self._notify(self.on_error, message)

    def _notify_change(self):
        self._notify(self.on_change)

    def _notify(self, callback: Optional[Callable], *args: Any):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"[SESSION] Observer {getattr(callback, '__name__', callback)} failed: {e}")
