import asyncio
import unittest
from unittest import mock

from exam_app.api.client import ApiError
from exam_app.session.addressing import IdentifierListResolver, SequentialResolver
from exam_app.session.answers import BUSY, FAILED, INACTIVE, SAVED, AnswerRecorder
from exam_app.session.models import ExamSession, QuestionPayload, SessionState, TestMode


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class TestAnswerRecorder(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.session = ExamSession('sub-1', TestMode.EXERCISE_TEST, 3, 600, user_id='u1')
        self.session.state = SessionState.IN_PROGRESS
        self.session.current_question = QuestionPayload(question_id='q-1', question_index=1)
        self.backend = mock.Mock()
        self.backend.submit_answer = mock.AsyncMock(return_value={})
        self.clock = FakeClock()
        self.audit = mock.Mock()
        self.recorder = AnswerRecorder(self.backend, self.session, SequentialResolver(3),
                                       clock=self.clock, audit_logger=self.audit)

    async def test_saved_answer_marks_attempted_and_reports_dwell(self):
        self.recorder.mark_displayed(1)
        self.clock.now += 12.7

        outcome = await self.recorder.select_answer(1, '(B)')

        self.assertEqual(outcome.status, SAVED)
        self.assertTrue(outcome.ok)
        self.assertTrue(self.session.is_attempted(1))
        self.assertEqual(self.session.answers[1], '(B)')
        self.assertEqual(self.session.selected_answer, '(B)')
        self.backend.submit_answer.assert_awaited_once_with('sub-1', 1, '(B)', 12, 'q-1')
        self.audit.log_answer_save.assert_called_once_with('u1', 'sub-1', 1, 12)

    async def test_dwell_resets_when_another_question_is_shown(self):
        self.recorder.mark_displayed(1)
        self.clock.now += 30
        self.recorder.mark_displayed(2)
        self.assertEqual(self.recorder.dwell_seconds(1), 0)
        self.clock.now += 4
        self.assertEqual(self.recorder.dwell_seconds(2), 4)

    async def test_failure_restores_previous_selection(self):
        self.session.selected_answer = '(A)'
        self.backend.submit_answer.side_effect = ApiError("Failed to submit answer")

        outcome = await self.recorder.select_answer(1, '(C)')

        self.assertEqual(outcome.status, FAILED)
        self.assertEqual(outcome.error, "Failed to submit answer")
        self.assertEqual(self.session.selected_answer, '(A)')
        self.assertFalse(self.session.is_attempted(1))
        self.audit.log_answer_failure.assert_called_once()

    async def test_failure_after_navigating_away_keeps_new_question_untouched(self):
        gate = asyncio.Event()

        async def slow_failure(*args):
            await gate.wait()
            raise ApiError("timeout")

        self.backend.submit_answer.side_effect = slow_failure
        pending = asyncio.ensure_future(self.recorder.select_answer(1, '(C)'))
        await asyncio.sleep(0)

        self.session.current_position = 2
        self.session.selected_answer = '(D)'
        gate.set()
        outcome = await pending

        self.assertEqual(outcome.status, FAILED)
        self.assertEqual(self.session.selected_answer, '(D)')

    async def test_outstanding_write_blocks_same_key_only(self):
        gate = asyncio.Event()

        async def slow_save(*args):
            await gate.wait()
            return {}

        self.backend.submit_answer.side_effect = slow_save
        first = asyncio.ensure_future(self.recorder.select_answer(1, '(A)'))
        await asyncio.sleep(0)

        self.assertTrue(self.recorder.is_pending(1))
        self.assertEqual((await self.recorder.select_answer(1, '(B)')).status, BUSY)
        other = asyncio.ensure_future(self.recorder.select_answer(2, '(C)'))
        await asyncio.sleep(0)
        self.assertTrue(self.recorder.is_pending(2))

        gate.set()
        await self.recorder.wait_idle()
        self.assertFalse(self.recorder.has_pending)
        self.assertEqual((await first).status, SAVED)
        self.assertEqual((await other).status, SAVED)
        self.assertEqual(self.session.attempted, {1: True, 2: True})

    async def test_inactive_session_refuses_answers(self):
        self.session.state = SessionState.PAUSED
        outcome = await self.recorder.select_answer(1, '(A)')
        self.assertEqual(outcome.status, INACTIVE)
        self.backend.submit_answer.assert_not_awaited()

    async def test_chapter_answers_are_keyed_by_identifier(self):
        session = ExamSession('sub-2', TestMode.CHAPTER_TEST, 2, 300)
        session.state = SessionState.IN_PROGRESS
        recorder = AnswerRecorder(self.backend, session, IdentifierListResolver(['a', 'b']), clock=self.clock)

        outcome = await recorder.select_answer(1, '(A)')

        self.assertEqual(outcome.question_key, 'a')
        self.assertEqual(session.attempted, {'a': True})
        self.backend.submit_answer.assert_awaited_once_with('sub-2', 'a', '(A)', 0, None)


if __name__ == '__main__':
    unittest.main()
