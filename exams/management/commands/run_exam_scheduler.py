"""
Runs the exam lifecycle scheduler.

    python manage.py run_exam_scheduler            # loop forever
    python manage.py run_exam_scheduler --once     # single tick (cron friendly)
"""

import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import close_old_connections

from exams.repositories import DjangoExamRegistry
from exams.scheduler import DEFAULT_INTERVAL_SECONDS, ExamLifecycleScheduler

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Promotes scheduled exams to active and active exams to completed based on their start/end times'

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval', type=int,
            default=getattr(settings, 'EXAM_SCHEDULER_INTERVAL_SECONDS', DEFAULT_INTERVAL_SECONDS),
            help='Seconds between ticks',
        )
        parser.add_argument('--once', action='store_true', help='Run a single tick and exit')

    def handle(self, *args, **options):
        scheduler = ExamLifecycleScheduler(DjangoExamRegistry())

        if options['once']:
            result = scheduler.tick()
            self.stdout.write(
                f"Activated {len(result.activated)} exam(s), completed {len(result.completed)} exam(s)."
            )
            if not result.ok:
                raise CommandError("; ".join(result.errors))
            return

        interval = options['interval']
        if interval <= 0:
            raise CommandError("--interval must be a positive number of seconds")

        self.stdout.write(self.style.SUCCESS(f"Exam scheduler running every {interval}s"))

        def sleep(seconds):
            time.sleep(seconds)
            # Drop connections the database closed while we were idle
            close_old_connections()

        try:
            scheduler.run_forever(interval=interval, sleep=sleep)
        except KeyboardInterrupt:
            self.stdout.write("Exam scheduler stopped.")
