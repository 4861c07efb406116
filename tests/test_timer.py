import unittest

from exam_app.session.timer import CountdownTimer, format_time


class TestFormatTime(unittest.TestCase):

    def test_formats_hours_minutes_seconds(self):
        self.assertEqual(format_time(0), "00:00:00")
        self.assertEqual(format_time(61), "00:01:01")
        self.assertEqual(format_time(3600 + 125), "01:02:05")

    def test_negative_is_shown_as_zero(self):
        self.assertEqual(format_time(-5), "00:00:00")


class TestCountdownTimer(unittest.TestCase):

    def test_tick_decrements_while_running(self):
        timer = CountdownTimer().start(5)
        self.assertEqual(timer.tick(), 4)
        self.assertEqual(timer.tick(), 3)
        self.assertTrue(timer.is_running)

    def test_tick_is_inert_when_stopped(self):
        timer = CountdownTimer().start(5)
        self.assertEqual(timer.stop(), 5)
        self.assertEqual(timer.tick(), 5)

    def test_expiry_fires_exactly_once(self):
        fired = []
        timer = CountdownTimer(on_expired=lambda: fired.append(True)).start(2)
        timer.tick()
        timer.tick()
        for _ in range(5):
            self.assertEqual(timer.tick(), 0)
        self.assertEqual(len(fired), 1)
        self.assertTrue(timer.expired)
        self.assertFalse(timer.is_running)

    def test_never_negative(self):
        timer = CountdownTimer().start(-10)
        self.assertEqual(timer.remaining, 0)
        timer.reseed(-3)
        self.assertEqual(timer.remaining, 0)

    def test_reseed_overwrites_remaining(self):
        timer = CountdownTimer().start(600)
        timer.tick()
        timer.reseed(420)
        self.assertEqual(timer.remaining, 420)
        self.assertEqual(timer.tick(), 419)


if __name__ == '__main__':
    unittest.main()
