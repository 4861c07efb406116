import unittest

from exam_app.session.entry import SessionEntry
from exam_app.session.models import TestMode


class TestEntryFromRoute(unittest.TestCase):

    def test_new_exercise_test(self):
        entry = SessionEntry.from_route('/user/test/ex42?user=u1&examTotalTime=45')
        self.assertIs(entry.mode, TestMode.EXERCISE_TEST)
        self.assertEqual(entry.exercise_id, 'ex42')
        self.assertEqual(entry.user_id, 'u1')
        self.assertEqual(entry.exam_total_minutes, 45)
        self.assertFalse(entry.is_resume)
        self.assertEqual(entry.display_minutes, 45)

    def test_resumed_exercise_test(self):
        entry = SessionEntry.from_route('/user/test/ex42?user=u1&time=1500&submissionId=s9&examTotalTime=60')
        self.assertTrue(entry.is_resume)
        self.assertEqual(entry.submission_id, 's9')
        self.assertEqual(entry.time_remaining_seconds, 1500)

    def test_chapter_test(self):
        entry = SessionEntry.from_route('/user/chapter-test/ch3?user=u1&examTotalTime=20&questionIds=q7,q3,q9')
        self.assertIs(entry.mode, TestMode.CHAPTER_TEST)
        self.assertEqual(entry.chapter_id, 'ch3')
        self.assertEqual(entry.question_ids, ['q7', 'q3', 'q9'])
        self.assertEqual(entry.chapter_parameters, {'chapterId': 'ch3', 'userId': 'u1', 'totalTime': 20})

    def test_route_without_target_is_rejected(self):
        for route in ('/user/test', '/user/dashboard', ''):
            with self.assertRaises(ValueError):
                SessionEntry.from_route(route)

    def test_blank_and_bad_values_are_ignored(self):
        entry = SessionEntry.from_route('/user/test/ex1?user=&time=abc')
        self.assertIsNone(entry.user_id)
        self.assertIsNone(entry.time_remaining_seconds)
        self.assertEqual(entry.display_minutes, 0)

    def test_to_route_round_trips(self):
        route = '/user/chapter-test/ch3?user=u1&time=300&submissionId=s1&examTotalTime=20&questionIds=a,b'
        entry = SessionEntry.from_route(route)
        self.assertEqual(entry.to_route(), route)


class TestEntryFromSubmission(unittest.TestCase):

    def test_paused_exercise_submission(self):
        entry = SessionEntry.from_submission({
            '_id': 's1', 'status': 'paused', 'timeLeft': 734, 'totalTime': 30,
            'exerciseId': {'_id': 'ex1', 'title': 'Algebra'}, 'userId': {'_id': 'u1'},
        })
        self.assertIs(entry.mode, TestMode.EXERCISE_TEST)
        self.assertEqual(entry.submission_id, 's1')
        self.assertEqual(entry.exercise_id, 'ex1')
        self.assertEqual(entry.user_id, 'u1')
        self.assertEqual(entry.time_remaining_seconds, 734)
        self.assertEqual(entry.to_route(), '/user/test/ex1?user=u1&time=734&submissionId=s1&examTotalTime=30')

    def test_missing_time_left_uses_total_time(self):
        entry = SessionEntry.from_submission({'_id': 's1', 'totalTime': 30, 'exerciseId': 'ex1'})
        self.assertEqual(entry.time_remaining_seconds, 1800)

    def test_missing_everything_uses_default_duration(self):
        entry = SessionEntry.from_submission({'_id': 's1', 'exerciseId': 'ex1'})
        self.assertEqual(entry.time_remaining_seconds, 3600)

    def test_chapter_submission(self):
        entry = SessionEntry.from_submission({
            '_id': 's2', 'chapterId': 'ch1', 'questionIds': ['a', 'b'], 'timeLeft': 100,
        })
        self.assertIs(entry.mode, TestMode.CHAPTER_TEST)
        self.assertEqual(entry.question_ids, ['a', 'b'])


if __name__ == '__main__':
    unittest.main()
