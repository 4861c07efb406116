import unittest
from unittest import mock

from exam_app.api.client import ApiError
from exam_app.session.controller import ExamSessionController
from exam_app.session.entry import SessionEntry
from exam_app.session.models import (
    ExerciseMetadata, FetchedQuestion, QuestionPayload, SessionState, StartedSubmission, TestMode
)
from exam_app.views.examinee.exam_interface import create_exam_interface


def make_backend():
    backend = mock.Mock()
    backend.start_exam = mock.AsyncMock(return_value=StartedSubmission('sub-1', time_remaining_seconds=600))
    backend.get_exercise = mock.AsyncMock(return_value=ExerciseMetadata('ex1', 3, title="Algebra"))
    backend.fetch_question = mock.AsyncMock(return_value=FetchedQuestion(
        QuestionPayload(question_id='q-1', question_index=1, text="What is 2+2?", options=['3', '4'])
    ))
    backend.pause_exam = mock.AsyncMock(return_value={})
    return backend


class TestExamInterfaceExit(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.page = mock.Mock()
        entry = SessionEntry(mode=TestMode.EXERCISE_TEST, user_id='u1', exercise_id='ex1')
        self.controller = ExamSessionController(make_backend(), entry, audit_logger=mock.Mock(),
                                                tick_interval=None)
        self.paused = []
        create_exam_interface(self.page, self.controller, pause_callback=lambda: self.paused.append(True))
        self.page.run_task.assert_called_once()
        self.assertTrue(await self.controller.load())

    async def test_pausing_hands_control_back_to_the_app(self):
        self.assertTrue(await self.controller.pause())
        self.assertIs(self.controller.state, SessionState.PAUSED)
        self.assertEqual(self.paused, [True])

    async def test_view_stays_when_pause_fails(self):
        self.controller.backend.pause_exam.side_effect = ApiError("Failed to pause", 500)
        self.assertFalse(await self.controller.pause())
        self.assertIs(self.controller.state, SessionState.IN_PROGRESS)
        self.assertEqual(self.paused, [])


if __name__ == '__main__':
    unittest.main()
