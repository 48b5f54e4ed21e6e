"""
Management command to send training due-date reminders and flag overdue assignments
"""
from django.core.management.base import BaseCommand
from backend.training.workflow import send_due_reminders


class Command(BaseCommand):
    help = 'Remind users of trainings that are due soon and mark past-due assignments overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=3,
            help='Remind about assignments due within this many days (default: 3)',
        )

    def handle(self, *args, **options):
        days = options['days']
        if days < 0:
            self.stdout.write(self.style.ERROR('--days must not be negative'))
            return

        reminded, overdue = send_due_reminders(days=days)
        self.stdout.write(self.style.SUCCESS(f'Sent {reminded} reminders, marked {overdue} assignments overdue'))
