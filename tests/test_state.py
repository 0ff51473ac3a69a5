import unittest

from botcop.autonomy.state import ActivityTracker


class ActivityStatsTests(unittest.TestCase):
    def test_empty_log_reports_zero_rate(self):
        stats = ActivityTracker().stats()
        self.assertEqual((stats.total, stats.successes, stats.errors), (0, 0, 0))
        self.assertEqual(stats.success_rate, "0%")

    def test_stats_count_entries_by_kind(self):
        tracker = ActivityTracker()
        for kind in ("info", "success", "error", "warning", "success", "info"):
            tracker.record(f"entry {kind}", kind)

        stats = tracker.stats()

        self.assertEqual(stats.total, len(tracker.log))
        self.assertEqual(stats.successes, 2)
        self.assertEqual(stats.errors, 1)
        self.assertLessEqual(stats.successes + stats.errors, stats.total)
        self.assertEqual(stats.success_rate, "33.33%")
        self.assertEqual(
            stats.as_dict(),
            {"total": 6, "successes": 2, "errors": 1, "successRate": "33.33%"},
        )

    def test_log_is_append_only_in_order(self):
        tracker = ActivityTracker()
        first = tracker.record("one")
        second = tracker.record("two", "success")
        self.assertEqual(tracker.log, [first, second])
        self.assertLessEqual(first.timestamp, second.timestamp)

    def test_unknown_kind_is_recorded_as_info(self):
        tracker = ActivityTracker()
        self.assertEqual(tracker.record("odd", "fatal").kind, "info")


class HealthCounterTests(unittest.TestCase):
    def test_consecutive_failures_accumulate(self):
        tracker = ActivityTracker()
        for _ in range(3):
            tracker.record_failure()
        self.assertEqual(tracker.consecutive_errors, 3)

    def test_success_resets_counter_to_zero(self):
        tracker = ActivityTracker()
        for _ in range(4):
            tracker.record_failure()
        tracker.record_success()
        self.assertEqual(tracker.consecutive_errors, 0)

    def test_log_entries_do_not_touch_counter(self):
        tracker = ActivityTracker()
        tracker.record_failure()
        tracker.record("looks fine", "success")
        self.assertEqual(tracker.consecutive_errors, 1)

    def test_unhealthy_at_five_consecutive_errors(self):
        tracker = ActivityTracker()
        for _ in range(4):
            tracker.record_failure()
        self.assertTrue(tracker.is_healthy())
        tracker.record_failure()
        self.assertFalse(tracker.is_healthy())
        tracker.record_success()
        self.assertTrue(tracker.is_healthy())


if __name__ == "__main__":
    unittest.main()
