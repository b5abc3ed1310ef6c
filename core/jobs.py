"""
Job lifecycle outside of bidding: direct assignment and status updates.
"""

import logging

from django.db import transaction
from django.utils import timezone

from . import notifications
from .bidding import reject_pending_bids
from .exceptions import ActionForbidden, InvalidInput, ResourceNotFound, StateConflict
from .models import Job

logger = logging.getLogger(__name__)


# Who may drive each target status
PRINTER_OWNER_STATUSES = (Job.STATUS_PRINTING, Job.STATUS_COMPLETED)
CUSTOMER_STATUSES = (Job.STATUS_CANCELLED,)


class JobLifecycle:
    """
    Moves jobs through pending -> matched -> printing -> completed, or to
    cancelled.

    Args:
        printers: PrinterDirectory
        jobs: JobStore
        notifier: Notification sink
    """

    def __init__(self, printers, jobs, notifier):
        self.printers = printers
        self.jobs = jobs
        self.notifier = notifier

    def assign_printer(self, job_id, user_id, printer_id):
        """
        Let a printer owner take an open job with one of their printers.

        The printer must be available and support the job's material. The
        job is claimed with the same conditional update bid acceptance uses,
        and every pending bid on it is rejected.

        Returns:
            Job: The assigned job
        """
        with transaction.atomic():
            job = self.jobs.lock(job_id)
            if job is None:
                raise ResourceNotFound(f'Job with ID {job_id} does not exist.', code='job_not_found')

            if job.customer_id == user_id:
                raise ActionForbidden('Cannot take your own job.', code='cannot_take_own_job')

            printer = self.printers.get(printer_id)
            if printer is None:
                raise ResourceNotFound(
                    f'Printer with ID {printer_id} does not exist.',
                    code='printer_not_found'
                )

            if printer.owner_id != user_id:
                raise ActionForbidden('Not authorized to use this printer.', code='not_printer_owner')

            if not printer.is_available():
                raise StateConflict('Printer is not available.', code='printer_unavailable')

            if job.material and not printer.supports_material(job.material):
                raise StateConflict(
                    f'Printer does not support required material: {job.material}.',
                    code='material_not_supported'
                )

            if job.is_assigned() or not self.jobs.claim(job.pk, printer.pk):
                raise StateConflict('Job already assigned to a printer.', code='already_assigned')

            rejected_ids = reject_pending_bids(job.pk)
            job.refresh_from_db()

            notifications.send_after_commit(
                self.notifier,
                user_id=job.customer_id,
                type=notifications.JOB_ASSIGNED,
                title='Job Assigned',
                message=f'Your job "{job.file_name}" was taken by {printer.name}',
                data={'jobId': job.pk, 'printerId': printer.pk},
            )

        logger.info(
            f"Job {job.pk} assigned to printer {printer.pk} by user {user_id}; "
            f"rejected bids: {rejected_ids}"
        )
        return job

    def update_status(self, job_id, user_id, new_status):
        """
        Apply a status change requested by the job's customer or the
        assigned printer's owner.

        ``matched`` is only reachable through assignment or bid acceptance.
        Starting and completing work belong to the printer owner;
        cancelling belongs to the customer and rejects pending bids.

        Returns:
            Job: The updated job
        """
        if new_status not in dict(Job.STATUS_CHOICES):
            raise InvalidInput(f'Unknown job status: {new_status}.', code='invalid_status')

        if new_status in (Job.STATUS_PENDING, Job.STATUS_MATCHED):
            raise InvalidInput(
                'Jobs become matched only by accepting a bid or assigning a printer.',
                code='invalid_status'
            )

        with transaction.atomic():
            job = self.jobs.lock(job_id)
            if job is None:
                raise ResourceNotFound(f'Job with ID {job_id} does not exist.', code='job_not_found')

            if new_status in CUSTOMER_STATUSES:
                if job.customer_id != user_id:
                    raise ActionForbidden('Only the job owner can cancel a job.', code='not_job_owner')
            else:
                printer = self.printers.get(job.printer_id) if job.printer_id else None
                if printer is None or printer.owner_id != user_id:
                    raise ActionForbidden(
                        'Only the assigned printer owner can update this job.',
                        code='not_assigned_printer_owner'
                    )

            old_status = job.status
            if new_status not in Job.VALID_TRANSITIONS.get(old_status, []):
                raise StateConflict(
                    f'Cannot change job status from {old_status} to {new_status}.',
                    code='invalid_transition'
                )

            fields = {'status': new_status}
            if new_status == Job.STATUS_PRINTING:
                fields['started_at'] = timezone.now()
            elif new_status == Job.STATUS_COMPLETED:
                fields['completed_at'] = timezone.now()

            job = self.jobs.update(job.pk, **fields)

            rejected_ids = []
            if new_status == Job.STATUS_CANCELLED:
                rejected_ids = reject_pending_bids(job.pk)

            recipient_id = job.customer_id
            if user_id == job.customer_id and job.printer_id:
                recipient_id = job.printer.owner_id
            if recipient_id != user_id:
                notifications.send_after_commit(
                    self.notifier,
                    user_id=recipient_id,
                    type=notifications.JOB_STATUS_CHANGED,
                    title='Job Status Updated',
                    message=f'Job "{job.file_name}" is now {new_status}',
                    data={'jobId': job.pk, 'status': new_status, 'previousStatus': old_status},
                )

        logger.info(
            f"Job {job.pk} status changed from {old_status} to {new_status} by user {user_id}"
            + (f"; rejected bids: {rejected_ids}" if rejected_ids else '')
        )
        return job
