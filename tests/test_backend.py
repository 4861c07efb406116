import unittest
from unittest import mock

from exam_app.api.backend import ExamBackend
from exam_app.api.client import ApiError


class TestExamBackend(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.client = mock.Mock()
        self.backend = ExamBackend(self.client)

    async def test_start_exam_uses_backend_time_or_total(self):
        self.client.start_exam.return_value = {'_id': 'sub-1', 'timeLeft': 1200}
        started = await self.backend.start_exam('u1', 'ex1', 30)
        self.assertEqual(started.submission_id, 'sub-1')
        self.assertEqual(started.time_remaining_seconds, 1200)

        self.client.start_exam.return_value = {'_id': 'sub-2'}
        started = await self.backend.start_exam('u1', 'ex1', 30)
        self.assertEqual(started.time_remaining_seconds, 1800)

    async def test_start_exam_keeps_zero_time_left(self):
        self.client.start_exam.return_value = {'_id': 'sub-3', 'timeLeft': 0}
        started = await self.backend.start_exam('u1', 'ex1', 30)
        self.assertEqual(started.time_remaining_seconds, 0)

    async def test_start_without_id_is_an_error(self):
        self.client.start_exam.return_value = {'message': 'ok'}
        with self.assertRaises(ApiError):
            await self.backend.start_exam('u1', 'ex1', 30)

    async def test_chapter_test_returns_question_ids(self):
        self.client.start_chapter_test.return_value = {
            '_id': 'sub-ch', 'questionIds': ['q7', 'q3'], 'timeRemainingSeconds': 900
        }
        started = await self.backend.start_chapter_test({'chapterId': 'c1'})
        self.assertEqual(started.question_ids, ['q7', 'q3'])
        self.assertEqual(started.time_remaining_seconds, 900)

    async def test_exercise_question_by_number(self):
        self.client.get_exam_question.return_value = {
            'question': {'_id': 'q-5', 'question': 'What is 2+2?', 'options': ['3', '4']},
            'userAnswer': '(B)',
        }
        fetched = await self.backend.fetch_question('sub-1', 5, 'ex1')

        self.client.get_exam_question.assert_called_once_with('sub-1', 'ex1', 5)
        self.assertEqual(fetched.question.question_id, 'q-5')
        self.assertEqual(fetched.question.question_index, 5)
        self.assertEqual(fetched.question.answer_choices(), ['(A)', '(B)'])
        self.assertEqual(fetched.previous_answer, '(B)')

    async def test_chapter_question_by_identifier(self):
        self.client.get_chapter_test_question.return_value = {
            'question': {'_id': 'q3', 'question': 'Pick one', 'optionType': 'grid',
                         'gridOptions': [['', 'Col 1'], ['(A)', 'x'], ['(B)', 'y'], ['(C)', 'z']]},
            'userAnswer': '',
        }
        fetched = await self.backend.fetch_question('sub-ch', 'q3')

        self.client.get_chapter_test_question.assert_called_once_with('sub-ch', 'q3')
        self.assertTrue(fetched.question.is_grid)
        self.assertEqual(fetched.question.answer_choices(), ['(A)', '(B)', '(C)'])
        self.assertIsNone(fetched.previous_answer)

    async def test_submit_answer_body(self):
        self.client.submit_answer.return_value = {}
        await self.backend.submit_answer('sub-1', 2, '(C)', 14, 'q-2')
        self.client.submit_answer.assert_called_once_with('sub-1', {
            'questionId': 'q-2', 'userAnswer': '(C)', 'timeTaken': 14, 'questionIndex': 2
        })

        self.client.submit_answer.reset_mock()
        await self.backend.submit_answer('sub-ch', 'q3', '(A)', 3)
        self.client.submit_answer.assert_called_once_with('sub-ch', {
            'questionId': 'q3', 'userAnswer': '(A)', 'timeTaken': 3
        })

    async def test_resume_reads_stored_time(self):
        self.client.resume_exam.return_value = {'submission': {'timeLeft': 321}}
        self.assertEqual(await self.backend.resume_exam('sub-1'), 321)

        self.client.resume_exam.return_value = {'message': 'resumed'}
        self.assertIsNone(await self.backend.resume_exam('sub-1'))

    async def test_attempted_accepts_list_or_wrapper(self):
        self.client.get_attempted_answers.return_value = [{'questionIndex': 1}]
        self.assertEqual(await self.backend.fetch_attempted('s1'), [{'questionIndex': 1}])

        self.client.get_attempted_answers.return_value = {'attempts': [{'questionId': 'a'}]}
        self.assertEqual(await self.backend.fetch_attempted('s1'), [{'questionId': 'a'}])

    async def test_exercise_metadata(self):
        self.client.get_exercise.return_value = {
            'questionCount': 25, 'subject': 'Maths', 'source': 'Book', 'chapter': '3',
            'headers': [{'start': 1, 'end': 10, 'text': 'Part A'}],
        }
        exercise = await self.backend.get_exercise('ex1')
        self.assertEqual(exercise.question_count, 25)
        self.assertEqual(exercise.title, 'Maths - Book - 3')
        self.assertEqual(exercise.headers[0].end, 10)

    async def test_report_endpoint_depends_on_test_kind(self):
        self.client.get_chapter_exam_report.return_value = {'kind': 'chapter'}
        self.client.get_exam_report.return_value = {'kind': 'exercise'}
        self.assertEqual(await self.backend.fetch_report('s1', chapter_test=True), {'kind': 'chapter'})
        self.assertEqual(await self.backend.fetch_report('s1'), {'kind': 'exercise'})

    async def test_errors_propagate(self):
        self.client.pause_exam.side_effect = ApiError('Failed to pause', 500)
        with self.assertRaises(ApiError):
            await self.backend.pause_exam('s1', 10)


if __name__ == '__main__':
    unittest.main()
