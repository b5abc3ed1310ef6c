"""
ORM-backed stores for printers and jobs.

``PrinterDirectory`` and ``JobStore`` are the only places the matching and
bidding services read printers and jobs from, so the services never build
querysets of their own for these two models.
"""

import logging
from decimal import Decimal

from django.db import connection
from django.db.models import Q
from django.utils import timezone

from .models import Job, Printer

logger = logging.getLogger(__name__)


class PrinterDirectory:
    """Lookup and search over registered printers."""

    def get(self, printer_id):
        """Return the printer with ``printer_id`` or None."""
        return Printer.objects.select_related('owner').filter(pk=printer_id).first()

    def list_all(self):
        return list(Printer.objects.select_related('owner').all())

    def list_by_owner(self, user_id):
        return list(Printer.objects.filter(owner_id=user_id).order_by('id'))

    def search(self, materials=None, location=None, min_price=None, max_price=None, status=None):
        """
        Search printers with structural filters.

        Results keep the directory order: rating descending, then id.

        Args:
            materials: Iterable of materials; a printer matches if it
                supports any of them
            location: Case-insensitive substring of the printer location
            min_price: Minimum price per gram (inclusive)
            max_price: Maximum price per gram (inclusive)
            status: Exact printer status

        Returns:
            list[Printer]: Matching printers
        """
        queryset = Printer.objects.select_related('owner').all()

        if location:
            queryset = queryset.filter(location__icontains=location)

        if min_price is not None:
            queryset = queryset.filter(price_per_gram__gte=Decimal(str(min_price)))

        if max_price is not None:
            queryset = queryset.filter(price_per_gram__lte=Decimal(str(max_price)))

        if status:
            queryset = queryset.filter(status=status)

        materials = [m for m in (materials or []) if m]
        if not materials:
            return list(queryset)

        # JSON containment is not available on every backend (SQLite).
        if connection.features.supports_json_field_contains:
            material_filter = Q()
            for material in materials:
                material_filter |= Q(materials__contains=[material])
            return list(queryset.filter(material_filter))

        return [
            printer for printer in queryset
            if any(printer.supports_material(material) for material in materials)
        ]


class JobStore:
    """Read and write access to job records."""

    def get(self, job_id):
        """Return the job with ``job_id`` or None."""
        return Job.objects.select_related('printer', 'customer').filter(pk=job_id).first()

    def lock(self, job_id):
        """
        Return the job row locked for the rest of the current transaction.

        Must be called inside ``transaction.atomic()``.
        """
        return Job.objects.select_for_update().filter(pk=job_id).first()

    def update(self, job_id, **fields):
        """Apply ``fields`` to the job through ``save()`` and return it."""
        job = Job.objects.get(pk=job_id)
        for name, value in fields.items():
            setattr(job, name, value)
        job.save()
        return job

    def list_all(self):
        return list(Job.objects.select_related('printer').all())

    def list_by_customer(self, customer_id):
        return list(Job.objects.select_related('printer').filter(customer_id=customer_id))

    def claim(self, job_id, printer_id, final_cost=None):
        """
        Assign a printer to an unassigned job and mark it matched.

        The assignment is a single UPDATE conditioned on the job having no
        printer and still being pending, so of two concurrent claims exactly
        one changes a row.

        Returns:
            bool: True if this call assigned the job, False if it was taken
        """
        values = {
            'printer_id': printer_id,
            'status': Job.STATUS_MATCHED,
            'updated_at': timezone.now(),
        }
        if final_cost is not None:
            values['final_cost'] = final_cost

        claimed = Job.objects.filter(
            pk=job_id,
            printer__isnull=True,
            status=Job.STATUS_PENDING,
        ).update(**values)

        if claimed:
            logger.info(f"Job {job_id} assigned to printer {printer_id}")
        return claimed == 1
