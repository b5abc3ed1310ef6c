"""
Bid lifecycle: submission, role-aware listing, acceptance, rejection and
withdrawal.

Every state change runs inside ``transaction.atomic()`` with the job row
locked (``select_for_update``), which serializes submissions and acceptances
per job. Acceptance additionally claims the job with a conditional UPDATE, so
at most one bid per job can ever reach ``accepted``. Notifications are sent
after commit and cannot roll anything back.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List

from django.db import IntegrityError, transaction
from django.utils import timezone

from . import notifications
from .exceptions import ActionForbidden, InvalidInput, ResourceNotFound, StateConflict
from .models import Bid, Job

logger = logging.getLogger(__name__)


@dataclass
class BidListing:
    """Bids visible to one requester, plus how many exist in total."""
    bids: List[Bid]
    total: int
    is_customer_view: bool = False

    @property
    def showing(self):
        return len(self.bids)


@dataclass
class BidAcceptance:
    bid: Bid
    job: Job
    rejected_bid_ids: List[int]


def customer_ranking_key(bid):
    """Cheaper first, then faster, then earlier."""
    return (bid.amount, bid.estimated_completion_days, bid.created_at, bid.pk)


def reject_pending_bids(job_id, exclude_bid_id=None):
    """
    Move every bid still pending on a job to ``rejected``.

    Reads the current bid rows instead of an earlier snapshot, so bids
    withdrawn in the meantime are left alone. Must run inside the
    transaction that resolved the job.

    Returns:
        list[int]: Ids of the bids that were rejected
    """
    pending = Bid.objects.select_for_update().filter(job_id=job_id, status=Bid.STATUS_PENDING)
    if exclude_bid_id is not None:
        pending = pending.exclude(pk=exclude_bid_id)

    rejected_ids = list(pending.values_list('pk', flat=True))
    if rejected_ids:
        now = timezone.now()
        Bid.objects.filter(pk__in=rejected_ids, status=Bid.STATUS_PENDING).update(
            status=Bid.STATUS_REJECTED,
            resolved_at=now,
            updated_at=now,
        )
    return rejected_ids


class BidLedger:
    """
    Owns the bid lifecycle and its invariants.

    Args:
        printers: PrinterDirectory
        jobs: JobStore
        notifier: Notification sink
        max_pending_bids: Pending bids allowed per job at any time
        customer_view_limit: Bids shown to the job's customer
        notes_max_length: Longest accepted bid note
    """

    def __init__(self, printers, jobs, notifier, max_pending_bids=5,
                 customer_view_limit=3, notes_max_length=500):
        self.printers = printers
        self.jobs = jobs
        self.notifier = notifier
        self.max_pending_bids = max_pending_bids
        self.customer_view_limit = customer_view_limit
        self.notes_max_length = notes_max_length

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _validate_submission(self, amount, estimated_days, notes):
        try:
            amount = Decimal(str(amount))
            if amount.is_finite():
                amount = amount.quantize(Decimal('0.01'))
        except (InvalidOperation, ValueError):
            raise InvalidInput('Bid amount must be a valid number.', code='invalid_amount')
        if not amount.is_finite() or amount <= 0:
            raise InvalidInput('Bid amount must be greater than 0.', code='invalid_amount')

        if isinstance(estimated_days, bool) or not isinstance(estimated_days, int) or estimated_days <= 0:
            raise InvalidInput(
                'Estimated completion days must be a positive whole number.',
                code='invalid_completion_days'
            )

        notes = notes or ''
        if len(notes) > self.notes_max_length:
            raise InvalidInput(
                f'Bid notes cannot exceed {self.notes_max_length} characters.',
                code='notes_too_long'
            )
        return amount, notes

    def submit_bid(self, job_id, user_id, printer_id, amount, estimated_days, notes=''):
        """
        Place a pending bid on an open job.

        Checks, in order: job exists, bidder is not the customer, job is not
        assigned, bidder owns a printer, the printer is the bidder's, fewer
        than ``max_pending_bids`` are pending, and the printer has no pending
        bid on this job yet.

        Returns:
            Bid: The created bid
        """
        amount, notes = self._validate_submission(amount, estimated_days, notes)

        with transaction.atomic():
            job = self.jobs.lock(job_id)
            if job is None:
                raise ResourceNotFound(f'Job with ID {job_id} does not exist.', code='job_not_found')

            if job.customer_id == user_id:
                raise ActionForbidden('Cannot bid on your own job.', code='cannot_bid_on_own_job')

            if job.is_assigned():
                raise StateConflict('Job already assigned to a printer.', code='already_assigned')

            if job.status != Job.STATUS_PENDING:
                raise StateConflict('Job is not open for bidding.', code='job_not_open')

            owned_printers = self.printers.list_by_owner(user_id)
            if not owned_printers:
                raise ActionForbidden(
                    'You must be a printer owner to submit bids.',
                    code='not_printer_owner'
                )

            printer = next((p for p in owned_printers if p.pk == printer_id), None)
            if printer is None:
                if self.printers.get(printer_id) is None:
                    raise ResourceNotFound(
                        f'Printer with ID {printer_id} does not exist.',
                        code='printer_not_found'
                    )
                raise ActionForbidden(
                    'You can only bid with your own printers.',
                    code='not_printer_owner'
                )

            pending = list(Bid.objects.filter(job_id=job.pk, status=Bid.STATUS_PENDING))
            if len(pending) >= self.max_pending_bids:
                raise StateConflict(
                    f'This job has reached the maximum number of bids ({self.max_pending_bids}).',
                    code='bid_limit_reached'
                )

            if any(bid.printer_id == printer.pk for bid in pending):
                raise StateConflict(
                    'You already have a pending bid on this job.',
                    code='duplicate_pending_bid'
                )

            try:
                with transaction.atomic():
                    bid = Bid.objects.create(
                        job=job,
                        printer=printer,
                        bidder_id=user_id,
                        amount=amount,
                        estimated_completion_days=estimated_days,
                        notes=notes,
                    )
            except IntegrityError:
                raise StateConflict(
                    'You already have a pending bid on this job.',
                    code='duplicate_pending_bid'
                )

            notifications.send_after_commit(
                self.notifier,
                user_id=job.customer_id,
                type=notifications.BID_RECEIVED,
                title='New Bid Received',
                message=f'You received a new bid of ${bid.amount} for job "{job.file_name}"',
                data={'jobId': job.pk, 'bidId': bid.pk, 'amount': str(bid.amount)},
            )

        logger.info(
            f"Bid {bid.id} submitted on job {job.pk} by user {user_id} "
            f"with printer {printer.pk}: ${bid.amount}, {bid.estimated_completion_days} days"
        )
        return bid

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_bids(self, job_id, user_id):
        """
        Return the bids ``user_id`` may see on a job.

        The job's customer sees the cheapest pending bids (ties broken by
        fewer days), at most ``customer_view_limit`` of them, each with its
        printer loaded, and the total pending count. Anyone else sees every
        bid their own printers placed on the job, whatever its status.
        """
        job = self.jobs.get(job_id)
        if job is None:
            raise ResourceNotFound(f'Job with ID {job_id} does not exist.', code='job_not_found')

        if job.customer_id == user_id:
            pending = list(
                Bid.objects.select_related('printer')
                .filter(job_id=job.pk, status=Bid.STATUS_PENDING)
            )
            ranked = sorted(pending, key=customer_ranking_key)
            return BidListing(
                bids=ranked[:self.customer_view_limit],
                total=len(pending),
                is_customer_view=True,
            )

        own_bids = list(
            Bid.objects.select_related('printer')
            .filter(job_id=job.pk, printer__owner_id=user_id)
            .order_by('-created_at', '-id')
        )
        return BidListing(bids=own_bids, total=len(own_bids))

    def list_printer_bids(self, printer_id, user_id):
        """Every bid placed with one printer, newest first; owner only."""
        printer = self.printers.get(printer_id)
        if printer is None:
            raise ResourceNotFound(
                f'Printer with ID {printer_id} does not exist.',
                code='printer_not_found'
            )
        if printer.owner_id != user_id:
            raise ActionForbidden('Not authorized to view bids for this printer.', code='not_printer_owner')

        return list(
            Bid.objects.select_related('job')
            .filter(printer_id=printer.pk)
            .order_by('-created_at', '-id')
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _load_bid_and_lock_job(self, bid_id):
        bid = Bid.objects.filter(pk=bid_id).only('pk', 'job_id').first()
        if bid is None:
            raise ResourceNotFound(f'Bid with ID {bid_id} does not exist.', code='bid_not_found')

        # Lock order is always job, then bid.
        job = self.jobs.lock(bid.job_id)
        if job is None:
            raise ResourceNotFound(f'Job with ID {bid.job_id} does not exist.', code='job_not_found')

        bid = Bid.objects.select_for_update().get(pk=bid_id)
        return bid, job

    def accept_bid(self, bid_id, user_id):
        """
        Accept one pending bid, assign its printer and reject the rest.

        Returns:
            BidAcceptance: The accepted bid, the updated job and the ids of
            the sibling bids that were rejected
        """
        with transaction.atomic():
            bid, job = self._load_bid_and_lock_job(bid_id)

            if job.customer_id != user_id:
                raise ActionForbidden('Only the job owner can accept bids.', code='not_job_owner')

            if not bid.is_pending():
                raise StateConflict('Bid is no longer pending.', code='no_longer_pending')

            if job.is_assigned():
                raise StateConflict('Job already assigned to a printer.', code='already_assigned')

            now = timezone.now()
            bid.status = Bid.STATUS_ACCEPTED
            bid.resolved_at = now
            bid.save(update_fields=['status', 'resolved_at', 'updated_at'])

            if not self.jobs.claim(job.pk, bid.printer_id, final_cost=bid.amount):
                # Raising rolls back the acceptance above.
                raise StateConflict('Job already assigned to a printer.', code='already_assigned')

            rejected_ids = reject_pending_bids(job.pk, exclude_bid_id=bid.pk)
            job.refresh_from_db()

            notifications.send_after_commit(
                self.notifier,
                user_id=bid.bidder_id,
                type=notifications.BID_ACCEPTED,
                title='Bid Accepted!',
                message=f'Your bid of ${bid.amount} was accepted for job "{job.file_name}"',
                data={'jobId': job.pk, 'bidId': bid.pk},
            )

        logger.info(
            f"Bid {bid.pk} accepted on job {job.pk} by user {user_id}; "
            f"rejected siblings: {rejected_ids}"
        )
        return BidAcceptance(bid=bid, job=job, rejected_bid_ids=rejected_ids)

    def reject_bid(self, bid_id, user_id):
        """Reject a single pending bid on the customer's job."""
        with transaction.atomic():
            bid, job = self._load_bid_and_lock_job(bid_id)

            if job.customer_id != user_id:
                raise ActionForbidden('Only the job owner can reject bids.', code='not_job_owner')

            if not bid.is_pending():
                raise StateConflict('Bid is no longer pending.', code='no_longer_pending')

            bid.status = Bid.STATUS_REJECTED
            bid.resolved_at = timezone.now()
            bid.save(update_fields=['status', 'resolved_at', 'updated_at'])

            notifications.send_after_commit(
                self.notifier,
                user_id=bid.bidder_id,
                type=notifications.BID_REJECTED,
                title='Bid Not Accepted',
                message=f'Your bid for job "{job.file_name}" was not selected',
                data={'jobId': job.pk, 'bidId': bid.pk},
            )

        logger.info(f"Bid {bid.pk} rejected on job {job.pk} by user {user_id}")
        return bid

    def withdraw_bid(self, bid_id, user_id):
        """Withdraw the caller's own pending bid."""
        with transaction.atomic():
            bid, job = self._load_bid_and_lock_job(bid_id)

            if bid.bidder_id != user_id:
                raise ActionForbidden('You can only withdraw your own bids.', code='not_bid_owner')

            if not bid.is_pending():
                raise StateConflict('Can only withdraw pending bids.', code='no_longer_pending')

            bid.status = Bid.STATUS_WITHDRAWN
            bid.resolved_at = timezone.now()
            bid.save(update_fields=['status', 'resolved_at', 'updated_at'])

        logger.info(f"Bid {bid.pk} withdrawn from job {job.pk} by user {user_id}")
        return bid
