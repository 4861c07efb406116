import unittest

from exam_app.session.addressing import IdentifierListResolver, SequentialResolver, make_resolver
from exam_app.session.models import TestMode


class TestSequentialResolver(unittest.TestCase):

    def setUp(self):
        self.resolver = SequentialResolver(50)

    def test_key_is_the_position(self):
        self.assertEqual(self.resolver.resolve_question_key(12), 12)
        self.assertEqual(self.resolver.total_questions(), 50)

    def test_out_of_range_position_is_rejected(self):
        with self.assertRaises(ValueError):
            self.resolver.resolve_question_key(0)
        with self.assertRaises(ValueError):
            self.resolver.resolve_question_key(51)

    def test_key_from_attempt_reads_question_index(self):
        self.assertEqual(self.resolver.key_from_attempt({'questionIndex': 7}), 7)
        self.assertEqual(self.resolver.key_from_attempt({'questionIndex': '8'}), 8)
        self.assertIsNone(self.resolver.key_from_attempt({'questionIndex': 99}))
        self.assertIsNone(self.resolver.key_from_attempt({'questionId': 'abc'}))

    def test_zero_questions_is_not_an_exam(self):
        with self.assertRaises(ValueError):
            SequentialResolver(0)


class TestIdentifierListResolver(unittest.TestCase):

    def setUp(self):
        self.resolver = IdentifierListResolver(['q7', 'q3', 'q9'])

    def test_key_is_identifier_at_position(self):
        self.assertEqual(self.resolver.resolve_question_key(2), 'q3')
        self.assertEqual(self.resolver.total_questions(), 3)
        self.assertEqual(self.resolver.keys(), ['q7', 'q3', 'q9'])

    def test_position_of_identifier(self):
        self.assertEqual(self.resolver.position_of('q9'), 3)
        self.assertIsNone(self.resolver.position_of('q1'))

    def test_key_from_attempt_only_accepts_known_identifiers(self):
        self.assertEqual(self.resolver.key_from_attempt({'questionId': 'q3'}), 'q3')
        self.assertIsNone(self.resolver.key_from_attempt({'questionId': 'other'}))
        self.assertIsNone(self.resolver.key_from_attempt({'questionIndex': 1}))

    def test_empty_list_is_rejected(self):
        with self.assertRaises(ValueError):
            IdentifierListResolver([])


class TestMakeResolver(unittest.TestCase):

    def test_mode_selects_variant(self):
        self.assertIsInstance(make_resolver(TestMode.EXERCISE_TEST, question_count=3), SequentialResolver)
        resolver = make_resolver(TestMode.CHAPTER_TEST, question_ids=['a', 'b'])
        self.assertIsInstance(resolver, IdentifierListResolver)
        self.assertEqual(resolver.resolve_question_key(1), 'a')


if __name__ == '__main__':
    unittest.main()
