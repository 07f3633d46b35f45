from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_datetime

from booking_core.notifications.services import ReminderService


class Command(BaseCommand):
    help = "Send WhatsApp appointment reminders (day before and morning of) for elite clinics."

    def add_arguments(self, parser):
        parser.add_argument(
            "--now",
            help="ISO-8601 instant to run the sweep as of (defaults to the current time).",
        )

    def handle(self, *args, **options):
        now = None
        if options.get("now"):
            now = parse_datetime(options["now"].replace("Z", "+00:00"))
            if now is None or now.tzinfo is None:
                raise CommandError("--now must be an ISO-8601 instant with an offset, e.g. 2025-06-09T13:00:00Z")

        run = ReminderService.run(now=now)
        self.stdout.write(
            self.style.SUCCESS(
                f"day_before={run.day_before} morning_of={run.morning_of} sent={run.sent} failed={run.failed}"
            )
        )
