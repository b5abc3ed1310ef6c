"""
Django signals for printer statistics.

When a job reaches ``completed`` the assigned printer's ``completed_jobs``
counter is incremented, inside the same transaction as the job save.
"""

import logging

from django.db import transaction
from django.db.models import F
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Job, Printer

logger = logging.getLogger(__name__)


@receiver(pre_save, sender=Job)
def remember_previous_job_status(sender, instance, **kwargs):
    """
    Record the stored status on the instance before it is overwritten.

    Args:
        sender: The Job model class
        instance: The Job instance about to be saved
        **kwargs: Additional keyword arguments
    """
    if instance.pk is None:
        instance._previous_status = None
        return

    instance._previous_status = (
        Job.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    )


@receiver(post_save, sender=Job)
def count_completed_job(sender, instance, created, **kwargs):
    """
    Increment the printer's completed job counter on completion.

    Only the save that moves a job into ``completed`` counts; saving an
    already completed job again changes nothing. The counter
    is updated with an F() expression so concurrent completions on one
    printer are all counted.

    Args:
        sender: The Job model class
        instance: The Job instance that was saved
        created: Boolean indicating if this is a new job
        **kwargs: Additional keyword arguments
    """
    previous_status = getattr(instance, '_previous_status', None)
    if instance.status != Job.STATUS_COMPLETED or previous_status == Job.STATUS_COMPLETED:
        return

    if instance.printer_id is None:
        return

    try:
        with transaction.atomic():
            Printer.objects.filter(pk=instance.printer_id).update(
                completed_jobs=F('completed_jobs') + 1
            )

        logger.info(f"Printer {instance.printer_id} completed job {instance.pk}")

    except Exception as e:
        logger.error(
            f"Error updating completed jobs for job {instance.pk}: {e}",
            exc_info=True
        )
        # Re-raise so the job save rolls back with it
        raise
