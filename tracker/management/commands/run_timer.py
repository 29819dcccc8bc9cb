"""Terminal renderer: ticks the tracker and prints the timer once a second."""

import time

from django.apps import apps
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from tracker.datetime_utils import format_clock, subtitle_for
from tracker.models import ReminderSource


class Command(BaseCommand):
    help = (
        "Show the live feed timer. Sends reminders while running when "
        'NURTURE_REMINDER_SOURCE is "terminal".'
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Render a single tick and exit",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between ticks (default NURTURE_TICK_SECONDS)",
        )

    def handle(self, *args, **options):
        interval = options["interval"] or settings.NURTURE_TICK_SECONDS
        tracker = apps.get_app_config("tracker").get_tracker()
        if tracker.load_warning:
            self.stderr.write(self.style.WARNING(tracker.load_warning))

        try:
            while True:
                tracker.reload_if_changed()
                now = timezone.now()
                result = tracker.tick(now, ReminderSource.TERMINAL)
                self.stdout.write(self.render(now, result))
                if options["once"]:
                    return
                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write("")

    def render(self, now, result):
        state = result.state
        line = f"{format_clock(now)}  {state.display:>10}  {subtitle_for(state)}"
        if result.reminder:
            return self.style.WARNING(f"{line}  -- Time to feed!")
        if state.overdue:
            return self.style.ERROR(line)
        return line
