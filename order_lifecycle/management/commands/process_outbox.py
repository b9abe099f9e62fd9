"""
Management command to forward outbox events to the real-time channel.
"""
import time

from django.core.management.base import BaseCommand

from order_lifecycle.infra.dispatcher import OutboxDispatcher


class Command(BaseCommand):
    help = 'Forward queued domain events to the real-time channel'

    def add_arguments(self, parser):
        parser.add_argument(
            '--limit',
            type=int,
            default=100,
            help='Maximum number of events to send in one run',
        )
        parser.add_argument(
            '--loop',
            action='store_true',
            help='Keep polling the outbox',
        )
        parser.add_argument(
            '--interval',
            type=int,
            default=3,
            help='Seconds between polls in loop mode',
        )

    def handle(self, *args, **options):
        limit = options['limit']
        interval = options['interval']
        dispatcher = OutboxDispatcher()

        if not options['loop']:
            processed = dispatcher.process_outbox_events(limit=limit)
            self.stdout.write(self.style.SUCCESS(f'Dispatched {processed} events'))
            return

        self.stdout.write(f'Starting outbox dispatcher (interval: {interval}s)')
        try:
            while True:
                processed = dispatcher.process_outbox_events(limit=limit)
                if processed > 0:
                    self.stdout.write(self.style.SUCCESS(f'Dispatched {processed} events'))
                time.sleep(interval)
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('Stopped by user'))
