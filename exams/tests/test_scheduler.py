from datetime import timedelta

from django.test import SimpleTestCase

from assessments.tests.fakes import FakeClock, InMemoryExamRegistry, make_exam
from exams.scheduler import ExamLifecycleScheduler


class ExamLifecycleSchedulerTests(SimpleTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.registry = InMemoryExamRegistry()
        self.scheduler = ExamLifecycleScheduler(self.registry, clock=self.clock)

    def test_scheduled_exam_becomes_active_once(self):
        self.registry.add(make_exam("e1", status="scheduled", start_at=self.clock.now - timedelta(minutes=1)))

        first = self.scheduler.tick()
        second = self.scheduler.tick()

        self.assertEqual(first.activated, ["Exam e1"])
        self.assertEqual(second.activated, [])
        self.assertEqual(self.registry.get_exam("e1").status, "active")

    def test_active_exam_past_end_completes(self):
        self.registry.add(make_exam("e1", status="active", end_at=self.clock.now))
        self.registry.add(make_exam("e2", status="active", end_at=self.clock.now + timedelta(minutes=5)))

        result = self.scheduler.tick()

        self.assertEqual(result.completed, ["Exam e1"])
        self.assertEqual(self.registry.get_exam("e2").status, "active")

    def test_exams_without_times_are_left_alone(self):
        self.registry.add(make_exam("e1", status="scheduled"))
        self.registry.add(make_exam("e2", status="active"))
        self.registry.add(make_exam("e3", status="draft", start_at=self.clock.now - timedelta(days=1)))

        result = self.scheduler.tick()

        self.assertEqual((result.activated, result.completed), ([], []))
        self.assertEqual(self.registry.get_exam("e3").status, "draft")

    def test_failed_promotion_does_not_block_the_other(self):
        self.registry.add(make_exam("e1", status="scheduled", start_at=self.clock.now))
        self.registry.add(make_exam("e2", status="active", end_at=self.clock.now))
        self.registry.fail_on.add(("scheduled", "active"))

        with self.assertLogs("exams.scheduler", level="ERROR"):
            result = self.scheduler.tick()

        self.assertFalse(result.ok)
        self.assertEqual(result.completed, ["Exam e2"])
        self.assertEqual(self.registry.get_exam("e1").status, "scheduled")

        # Next tick picks up where the failed one left off
        self.registry.fail_on.clear()
        self.assertEqual(self.scheduler.tick().activated, ["Exam e1"])

    def test_run_forever_ticks_immediately_and_survives_errors(self):
        calls = []
        ticks = iter([RuntimeError("boom"), None, None])

        def tick():
            outcome = next(ticks)
            calls.append("tick")
            if outcome:
                raise outcome

        self.scheduler.tick = tick
        sleeps = []

        with self.assertLogs("exams.scheduler", level="ERROR"):
            count = self.scheduler.run_forever(
                interval=60,
                sleep=sleeps.append,
                should_stop=lambda: len(calls) >= 3,
            )

        self.assertEqual(count, 3)
        self.assertEqual(calls, ["tick", "tick", "tick"])
        self.assertEqual(sleeps, [60, 60])
