from decimal import Decimal
from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase

from core.models import Job, Printer, User


class RecalculatePrinterStatsCommandTests(TestCase):
    def setUp(self):
        self.customer = User.objects.create_user(
            username='customer', email='c@test.com', password='password'
        )
        self.owner = User.objects.create_user(
            username='owner', email='o@test.com', password='password', user_type='printer_owner'
        )

        self.printer1 = Printer.objects.create(
            owner=self.owner,
            name='Printer 1',
            location='Austin, TX',
            materials=['PLA'],
            price_per_gram=Decimal('0.05'),
        )
        self.printer2 = Printer.objects.create(
            owner=self.owner,
            name='Printer 2',
            location='Austin, TX',
            materials=['PLA'],
            price_per_gram=Decimal('0.05'),
        )

        # Printer 1: two completed jobs, one still printing
        for status in (Job.STATUS_COMPLETED, Job.STATUS_COMPLETED, Job.STATUS_PRINTING):
            Job.objects.create(customer=self.customer, printer=self.printer1, status=status)

        # Corrupt the counters
        Printer.objects.filter(pk=self.printer1.pk).update(completed_jobs=7)
        Printer.objects.filter(pk=self.printer2.pk).update(completed_jobs=3)

    def test_recalculate_counts(self):
        out = StringIO()
        call_command('recalculate_printer_stats', stdout=out)

        self.printer1.refresh_from_db()
        self.printer2.refresh_from_db()

        self.assertEqual(self.printer1.completed_jobs, 2)
        self.assertEqual(self.printer2.completed_jobs, 0)
        self.assertIn('Recalculation completed successfully', out.getvalue())
        self.assertIn('2 out of date', out.getvalue())

    def test_dry_run(self):
        out = StringIO()
        call_command('recalculate_printer_stats', '--dry-run', stdout=out)

        self.printer1.refresh_from_db()
        self.assertEqual(self.printer1.completed_jobs, 7)
        self.assertIn('[DRY-RUN] Printer', out.getvalue())
        self.assertIn('Dry run completed', out.getvalue())

    def test_small_batches(self):
        call_command('recalculate_printer_stats', '--batch-size', '1', stdout=StringIO())

        self.printer1.refresh_from_db()
        self.printer2.refresh_from_db()
        self.assertEqual(self.printer1.completed_jobs, 2)
        self.assertEqual(self.printer2.completed_jobs, 0)

    def test_invalid_batch_size(self):
        with self.assertRaises(CommandError):
            call_command('recalculate_printer_stats', '--batch-size', '0', stdout=StringIO())

    def test_consistent_counters_are_left_alone(self):
        call_command('recalculate_printer_stats', stdout=StringIO())
        out = StringIO()

        call_command('recalculate_printer_stats', stdout=out)

        self.assertIn('0 out of date', out.getvalue())
