# bills/management/commands/mark_overdue_bills.py

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_date

from bills.services.bill_service import mark_overdue_bills


class Command(BaseCommand):
    help = "Mark approved/partial bills whose due date has passed as overdue"

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            dest="as_of",
            default=None,
            help="Cut-off date (YYYY-MM-DD). Defaults to today.",
        )

    def handle(self, *args, **options):
        raw = options.get("as_of")
        as_of = timezone.localdate()
        if raw:
            as_of = parse_date(raw)
            if as_of is None:
                raise CommandError("--as-of must be a date in YYYY-MM-DD format")

        count = mark_overdue_bills(as_of=as_of)
        self.stdout.write(self.style.SUCCESS(f"Marked {count} bill(s) overdue as of {as_of}"))
