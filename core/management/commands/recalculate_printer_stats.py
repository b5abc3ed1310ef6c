# Recalculate Printer Stats Management Command
from django.core.management.base import BaseCommand, CommandError
from django.db.models import Count, Q

from core.models import Job, Printer


class Command(BaseCommand):
    help = 'Recounts completed jobs for every printer to repair drifted counters.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be at least 1.')

        self.stdout.write('Recalculating printer completed job counts...')

        printers = (
            Printer.objects
            .annotate(actual_completed=Count('jobs', filter=Q(jobs__status=Job.STATUS_COMPLETED)))
            .order_by('id')
            .iterator(chunk_size=batch_size)
        )
        updates = []
        count = 0
        changed = 0

        for printer in printers:
            if printer.completed_jobs != printer.actual_completed:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] Printer {printer.id} ({printer.name}): '
                        f'Completed jobs {printer.completed_jobs} -> {printer.actual_completed}'
                    )
                printer.completed_jobs = printer.actual_completed
                updates.append(printer)
                changed += 1

            if len(updates) >= batch_size:
                if not dry_run:
                    Printer.objects.bulk_update(updates, ['completed_jobs'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} printers...')

        if updates and not dry_run:
            Printer.objects.bulk_update(updates, ['completed_jobs'])

        self.stdout.write(f'Processed {count} printers total, {changed} out of date.')

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))
