from django.core.management.base import BaseCommand

from booking.lifecycle import send_due_reminders


class Command(BaseCommand):
    help = "Send the 24h and 1h appointment reminders that are due. Run it from cron every few minutes."

    def handle(self, *args, **options):
        sent = send_due_reminders()
        self.stdout.write(f"Sent {sent} reminder(s)")
