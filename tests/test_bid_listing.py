"""
Test suite for role-aware bid listing.

The job's customer sees the three cheapest pending bids (faster first on
equal price) and the total pending count. Printer owners see every bid
their own printers placed on the job, whatever its status.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from core.exceptions import ActionForbidden, ResourceNotFound
from core.models import Bid, Job, Printer
from core.notifications import NullNotificationSink
from core.services import build_services

User = get_user_model()


@pytest.fixture
def ledger():
    return build_services(notifier=NullNotificationSink()).ledger


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        email='customer@test.com',
        username='customer',
        password='TestPass123!'
    )


@pytest.fixture
def job(customer):
    return Job.objects.create(customer=customer, file_name='case.stl', material='PLA')


@pytest.fixture
def make_owner(db):
    counter = {'value': 0}

    def factory():
        counter['value'] += 1
        index = counter['value']
        owner = User.objects.create_user(
            email=f'owner{index}@test.com',
            username=f'owner{index}',
            password='TestPass123!',
            user_type='printer_owner'
        )
        printer = Printer.objects.create(
            owner=owner,
            name=f'Printer {index}',
            location='Austin, TX',
            materials=['PLA'],
            price_per_gram=Decimal('0.08'),
        )
        return owner, printer
    return factory


@pytest.mark.django_db
class TestCustomerView:

    def test_ranks_by_amount_then_days_and_shows_three(self, ledger, customer, job, make_owner):
        for amount, days in [('30', 2), ('25', 5), ('25', 3), ('40', 1)]:
            owner, printer = make_owner()
            ledger.submit_bid(job.id, owner.id, printer.id, Decimal(amount), days)

        listing = ledger.list_bids(job.id, customer.id)

        assert [(bid.amount, bid.estimated_completion_days) for bid in listing.bids] == [
            (Decimal('25.00'), 3),
            (Decimal('25.00'), 5),
            (Decimal('30.00'), 2),
        ]
        assert listing.total == 4
        assert listing.showing == 3
        assert listing.is_customer_view

    def test_includes_printer_profile(self, ledger, customer, job, make_owner):
        owner, printer = make_owner()
        ledger.submit_bid(job.id, owner.id, printer.id, Decimal('12'), 2)

        listing = ledger.list_bids(job.id, customer.id)

        assert listing.bids[0].printer.name == printer.name

    def test_only_pending_bids_are_listed(self, ledger, customer, job, make_owner):
        owner_a, printer_a = make_owner()
        owner_b, printer_b = make_owner()
        withdrawn = ledger.submit_bid(job.id, owner_a.id, printer_a.id, Decimal('5'), 1)
        kept = ledger.submit_bid(job.id, owner_b.id, printer_b.id, Decimal('50'), 9)
        ledger.withdraw_bid(withdrawn.id, owner_a.id)

        listing = ledger.list_bids(job.id, customer.id)

        assert [bid.id for bid in listing.bids] == [kept.id]
        assert listing.total == 1

    def test_empty_job(self, ledger, customer, job):
        listing = ledger.list_bids(job.id, customer.id)

        assert listing.bids == []
        assert listing.total == 0
        assert listing.showing == 0


@pytest.mark.django_db
class TestOwnerView:

    def test_sees_only_own_bids_across_statuses(self, ledger, job, make_owner):
        owner, printer = make_owner()
        rival, rival_printer = make_owner()

        withdrawn = ledger.submit_bid(job.id, owner.id, printer.id, Decimal('20'), 4)
        ledger.withdraw_bid(withdrawn.id, owner.id)
        pending = ledger.submit_bid(job.id, owner.id, printer.id, Decimal('18'), 4)
        ledger.submit_bid(job.id, rival.id, rival_printer.id, Decimal('10'), 1)

        listing = ledger.list_bids(job.id, owner.id)

        assert {bid.id for bid in listing.bids} == {withdrawn.id, pending.id}
        assert {bid.status for bid in listing.bids} == {Bid.STATUS_WITHDRAWN, Bid.STATUS_PENDING}
        assert listing.total == 2
        assert not listing.is_customer_view

    def test_user_without_printers_sees_nothing(self, ledger, job, make_owner):
        owner, printer = make_owner()
        ledger.submit_bid(job.id, owner.id, printer.id, Decimal('20'), 4)
        stranger = User.objects.create_user(
            email='stranger@test.com',
            username='stranger',
            password='TestPass123!'
        )

        listing = ledger.list_bids(job.id, stranger.id)

        assert listing.bids == []
        assert listing.total == 0

    def test_unknown_job(self, ledger, customer):
        with pytest.raises(ResourceNotFound):
            ledger.list_bids(999999, customer.id)


@pytest.mark.django_db
class TestPrinterBidHistory:

    def test_owner_sees_all_bids_of_printer_with_jobs(self, ledger, customer, make_owner):
        owner, printer = make_owner()
        first_job = Job.objects.create(customer=customer, file_name='a.stl')
        second_job = Job.objects.create(customer=customer, file_name='b.stl')
        ledger.submit_bid(first_job.id, owner.id, printer.id, Decimal('10'), 1)
        ledger.submit_bid(second_job.id, owner.id, printer.id, Decimal('11'), 2)

        bids = ledger.list_printer_bids(printer.id, owner.id)

        assert {bid.job.file_name for bid in bids} == {'a.stl', 'b.stl'}

    def test_other_users_are_forbidden(self, ledger, customer, make_owner):
        _, printer = make_owner()

        with pytest.raises(ActionForbidden):
            ledger.list_printer_bids(printer.id, customer.id)

    def test_unknown_printer(self, ledger, customer):
        with pytest.raises(ResourceNotFound) as exc_info:
            ledger.list_printer_bids(999999, customer.id)

        assert exc_info.value.get_codes() == 'printer_not_found'
