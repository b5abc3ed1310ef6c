"""
Test suite for bid acceptance, rejection and withdrawal.

Tests cover:
- Acceptance assigns the job and rejects every other pending bid
- At most one accepted bid per job, including the conditional claim path
- Authorization and state preconditions
- Notifications after commit, and isolation from sink failures
- Concurrent acceptance and submission from separate connections
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import TestCase, TransactionTestCase

from core.exceptions import (
    ActionForbidden,
    MarketplaceError,
    ResourceNotFound,
    StateConflict,
)
from core.models import Bid, Job, Printer
from core.notifications import NullNotificationSink
from core.services import build_services

User = get_user_model()


class RecordingSink:

    def __init__(self):
        self.sent = []

    def send(self, user_id, type, title, message, data=None):
        self.sent.append({'user_id': user_id, 'type': type, 'data': data})


class FailingSink:

    def send(self, user_id, type, title, message, data=None):
        raise RuntimeError('notification service is down')


class BidResolutionFixtureMixin:
    """Customer, job and three owners with one pending bid each."""

    def build_marketplace(self, notifier):
        self.ledger = build_services(notifier=notifier).ledger
        self.customer = User.objects.create_user(
            username='customer',
            email='customer@test.com',
            password='TestPass123!'
        )
        self.job = Job.objects.create(
            customer=self.customer,
            file_name='drone_frame.stl',
            material='PETG',
            estimated_weight=Decimal('150.00'),
        )
        self.owners = []
        self.printers = []
        self.bids = []
        for index, amount in enumerate(['40.00', '35.00', '45.00'], start=1):
            owner = User.objects.create_user(
                username=f'owner{index}',
                email=f'owner{index}@test.com',
                password='TestPass123!',
                user_type='printer_owner'
            )
            printer = Printer.objects.create(
                owner=owner,
                name=f'Printer {index}',
                location='Austin, TX',
                materials=['PETG'],
                price_per_gram=Decimal('0.10'),
            )
            bid = self.ledger.submit_bid(self.job.id, owner.id, printer.id, Decimal(amount), index)
            self.owners.append(owner)
            self.printers.append(printer)
            self.bids.append(bid)


class BidAcceptanceTests(BidResolutionFixtureMixin, TestCase):

    def setUp(self):
        self.sink = RecordingSink()
        self.build_marketplace(self.sink)

    def test_accept_assigns_job_and_rejects_siblings(self):
        winner = self.bids[1]

        result = self.ledger.accept_bid(winner.id, self.customer.id)

        self.assertEqual(result.bid.status, Bid.STATUS_ACCEPTED)
        self.assertIsNotNone(result.bid.resolved_at)
        self.assertEqual(result.job.status, Job.STATUS_MATCHED)
        self.assertEqual(result.job.printer_id, self.printers[1].id)
        self.assertEqual(result.job.final_cost, Decimal('35.00'))
        self.assertEqual(sorted(result.rejected_bid_ids), sorted([self.bids[0].id, self.bids[2].id]))

        statuses = dict(Bid.objects.filter(job=self.job).values_list('id', 'status'))
        self.assertEqual(statuses[winner.id], Bid.STATUS_ACCEPTED)
        self.assertEqual(statuses[self.bids[0].id], Bid.STATUS_REJECTED)
        self.assertEqual(statuses[self.bids[2].id], Bid.STATUS_REJECTED)

    def test_withdrawn_sibling_is_left_alone(self):
        self.ledger.withdraw_bid(self.bids[2].id, self.owners[2].id)

        result = self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(result.rejected_bid_ids, [self.bids[1].id])
        self.bids[2].refresh_from_db()
        self.assertEqual(self.bids[2].status, Bid.STATUS_WITHDRAWN)

    def test_second_acceptance_is_conflict(self):
        self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        with self.assertRaises(StateConflict) as ctx:
            self.ledger.accept_bid(self.bids[1].id, self.customer.id)

        self.assertEqual(ctx.exception.get_codes(), 'no_longer_pending')
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_ACCEPTED).count(), 1)

    def test_job_claimed_by_someone_else_is_conflict(self):
        # Another path assigned the job while this bid was still pending
        Job.objects.filter(pk=self.job.pk).update(printer=self.printers[2], status=Job.STATUS_MATCHED)

        with self.assertRaises(StateConflict) as ctx:
            self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(ctx.exception.get_codes(), 'already_assigned')
        self.bids[0].refresh_from_db()
        self.assertEqual(self.bids[0].status, Bid.STATUS_PENDING)

    def test_lost_claim_rolls_back_acceptance(self):
        with mock.patch.object(self.ledger.jobs, 'claim', return_value=False):
            with self.assertRaises(StateConflict):
                self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        self.assertFalse(Bid.objects.filter(status=Bid.STATUS_ACCEPTED).exists())
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_PENDING).count(), 3)
        self.job.refresh_from_db()
        self.assertIsNone(self.job.printer_id)

    def test_only_customer_can_accept(self):
        with self.assertRaises(ActionForbidden) as ctx:
            self.ledger.accept_bid(self.bids[0].id, self.owners[0].id)

        self.assertEqual(ctx.exception.get_codes(), 'not_job_owner')
        self.bids[0].refresh_from_db()
        self.assertEqual(self.bids[0].status, Bid.STATUS_PENDING)

    def test_unknown_bid(self):
        with self.assertRaises(ResourceNotFound) as ctx:
            self.ledger.accept_bid(999999, self.customer.id)

        self.assertEqual(ctx.exception.get_codes(), 'bid_not_found')

    def test_acceptance_notifies_winner(self):
        with self.captureOnCommitCallbacks(execute=True):
            self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(self.sink.sent, [{
            'user_id': self.owners[0].id,
            'type': 'bid_accepted',
            'data': {'jobId': self.job.id, 'bidId': self.bids[0].id},
        }])

    def test_failed_notification_keeps_acceptance(self):
        self.ledger.notifier = FailingSink()

        with self.assertLogs('core.notifications', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                result = self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(result.bid.status, Bid.STATUS_ACCEPTED)
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_MATCHED)

    def test_no_notification_when_acceptance_fails(self):
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(ActionForbidden):
                self.ledger.accept_bid(self.bids[0].id, self.owners[1].id)

        self.assertEqual(self.sink.sent, [])


class BidRejectionTests(BidResolutionFixtureMixin, TestCase):

    def setUp(self):
        self.sink = RecordingSink()
        self.build_marketplace(self.sink)

    def test_customer_rejects_single_bid(self):
        with self.captureOnCommitCallbacks(execute=True):
            bid = self.ledger.reject_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(bid.status, Bid.STATUS_REJECTED)
        self.assertIsNotNone(bid.resolved_at)
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_PENDING).count(), 2)
        self.assertEqual(self.sink.sent[0]['type'], 'bid_rejected')
        self.assertEqual(self.sink.sent[0]['user_id'], self.owners[0].id)

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_PENDING)

    def test_only_customer_can_reject(self):
        with self.assertRaises(ActionForbidden):
            self.ledger.reject_bid(self.bids[0].id, self.owners[1].id)

    def test_rejecting_resolved_bid_is_conflict(self):
        self.ledger.reject_bid(self.bids[0].id, self.customer.id)

        with self.assertRaises(StateConflict) as ctx:
            self.ledger.reject_bid(self.bids[0].id, self.customer.id)

        self.assertEqual(ctx.exception.get_codes(), 'no_longer_pending')


class BidWithdrawalTests(BidResolutionFixtureMixin, TestCase):

    def setUp(self):
        self.sink = RecordingSink()
        self.build_marketplace(self.sink)

    def test_bidder_withdraws_without_notification(self):
        with self.captureOnCommitCallbacks(execute=True):
            bid = self.ledger.withdraw_bid(self.bids[0].id, self.owners[0].id)

        self.assertEqual(bid.status, Bid.STATUS_WITHDRAWN)
        self.assertIsNotNone(bid.resolved_at)
        self.assertEqual(self.sink.sent, [])

    def test_only_bidder_can_withdraw(self):
        for user in (self.customer, self.owners[1]):
            with self.assertRaises(ActionForbidden) as ctx:
                self.ledger.withdraw_bid(self.bids[0].id, user.id)
            self.assertEqual(ctx.exception.get_codes(), 'not_bid_owner')

    def test_withdrawing_accepted_bid_is_conflict(self):
        self.ledger.accept_bid(self.bids[0].id, self.customer.id)

        with self.assertRaises(StateConflict) as ctx:
            self.ledger.withdraw_bid(self.bids[0].id, self.owners[0].id)

        self.assertEqual(ctx.exception.get_codes(), 'no_longer_pending')


class ConcurrentBiddingTests(BidResolutionFixtureMixin, TransactionTestCase):
    """
    Races between real database connections.

    Uses TransactionTestCase so every thread sees committed data. On
    SQLite the shared test database file and IMMEDIATE transactions make
    the racing calls queue on the write lock.
    """

    def setUp(self):
        self.build_marketplace(NullNotificationSink())

    def run_concurrently(self, calls):
        barrier = threading.Barrier(len(calls))

        def run(call):
            try:
                barrier.wait()
                return call()
            except MarketplaceError as e:
                return e
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=len(calls)) as executor:
            return list(executor.map(run, calls))

    def test_concurrent_acceptances_have_one_winner(self):
        results = self.run_concurrently([
            lambda bid_id=bid.id: self.ledger.accept_bid(bid_id, self.customer.id)
            for bid in self.bids
        ])

        winners = [r for r in results if not isinstance(r, MarketplaceError)]
        losers = [r for r in results if isinstance(r, StateConflict)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 2)
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_ACCEPTED).count(), 1)
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_REJECTED).count(), 2)

    def test_concurrent_submissions_respect_cap(self):
        calls = []
        for index in range(4, 8):
            owner = User.objects.create_user(
                username=f'racer{index}',
                email=f'racer{index}@test.com',
                password='TestPass123!',
                user_type='printer_owner'
            )
            printer = Printer.objects.create(
                owner=owner,
                name=f'Racer {index}',
                location='Austin, TX',
                materials=['PETG'],
                price_per_gram=Decimal('0.10'),
            )
            calls.append(
                lambda owner_id=owner.id, printer_id=printer.id: self.ledger.submit_bid(
                    self.job.id, owner_id, printer_id, Decimal('30.00'), 2
                )
            )

        results = self.run_concurrently(calls)

        refused = [r for r in results if isinstance(r, StateConflict)]
        self.assertEqual(len(refused), 2)
        self.assertEqual(Bid.objects.filter(job=self.job, status=Bid.STATUS_PENDING).count(), 5)
