"""
Tests for the signal that counts completed jobs per printer.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from core.models import Job, Printer

User = get_user_model()


class CompletedJobSignalTests(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(
            username='customer1',
            email='customer1@test.com',
            password='testpass123'
        )
        self.owner = User.objects.create_user(
            username='owner1',
            email='owner1@test.com',
            password='testpass123',
            user_type='printer_owner'
        )
        self.printer = Printer.objects.create(
            owner=self.owner,
            name='Signal Printer',
            location='Austin, TX',
            materials=['PLA'],
            price_per_gram=Decimal('0.05'),
        )
        self.job = Job.objects.create(
            customer=self.customer,
            printer=self.printer,
            status=Job.STATUS_MATCHED,
        )

    def test_completion_increments_counter(self):
        self.job.status = Job.STATUS_COMPLETED
        self.job.save()

        self.printer.refresh_from_db()
        self.assertEqual(self.printer.completed_jobs, 1)

    def test_saving_completed_job_again_does_not_double_count(self):
        self.job.status = Job.STATUS_COMPLETED
        self.job.save()
        self.job.notes = 'Delivered'
        self.job.save()

        self.printer.refresh_from_db()
        self.assertEqual(self.printer.completed_jobs, 1)

    def test_other_transitions_do_not_count(self):
        self.job.status = Job.STATUS_PRINTING
        self.job.save()
        self.job.status = Job.STATUS_CANCELLED
        self.job.save()

        self.printer.refresh_from_db()
        self.assertEqual(self.printer.completed_jobs, 0)

    def test_each_completion_counts_once(self):
        second = Job.objects.create(
            customer=self.customer,
            printer=self.printer,
            status=Job.STATUS_MATCHED,
        )
        for job in (self.job, second):
            job.status = Job.STATUS_COMPLETED
            job.save()

        self.printer.refresh_from_db()
        self.assertEqual(self.printer.completed_jobs, 2)

    def test_failed_validation_does_not_count(self):
        pending = Job.objects.create(customer=self.customer)
        pending.status = Job.STATUS_COMPLETED
        pending.printer = self.printer

        with self.assertRaises(ValidationError):
            pending.save()

        self.printer.refresh_from_db()
        self.assertEqual(self.printer.completed_jobs, 0)
