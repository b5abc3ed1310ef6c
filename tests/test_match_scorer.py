"""
Test suite for job-to-printer match scoring.

Tests cover:
- Material hard gate
- Location similarity tiers
- Rating, price and availability tiers
- Experience bonus and the 100 point cap
- Estimated cost
- Configurable location source

The scorer is pure, so these tests use unsaved model instances and never
touch the database.
"""

from decimal import Decimal

import pytest

from core.matching import MatchScorer, location_similarity
from core.models import Job, Printer


def make_printer(**overrides):
    values = {
        'name': 'Test Printer',
        'location': 'Austin, TX',
        'materials': ['PLA', 'PETG'],
        'price_per_gram': Decimal('0.20'),
        'status': Printer.STATUS_AVAILABLE,
        'rating': Decimal('0.00'),
        'completed_jobs': 0,
    }
    values.update(overrides)
    return Printer(**values)


def make_job(**overrides):
    values = {
        'file_name': 'bracket.stl',
        'material': 'PLA',
        'estimated_weight': Decimal('100.00'),
        'notes': '',
    }
    values.update(overrides)
    return Job(**values)


@pytest.fixture
def scorer():
    return MatchScorer()


class TestMaterialGate:
    """A missing required material zeroes the whole match."""

    def test_unsupported_material_scores_zero(self, scorer):
        job = make_job(material='PETG', notes='Austin, TX')
        printer = make_printer(
            materials=['PLA', 'TPU'],
            rating=Decimal('5.00'),
            price_per_gram=Decimal('0.01'),
            completed_jobs=500,
        )

        match = scorer.score(job, printer)

        assert match.score == 0
        assert match.estimated_cost == Decimal('0')
        assert match.reasons == ['Does not support required material: PETG']

    def test_supported_material_scores_positive(self, scorer):
        job = make_job(material='PETG')
        printer_a = make_printer(materials=['PLA', 'TPU'])
        printer_b = make_printer(materials=['PLA', 'PETG'])

        assert scorer.score(job, printer_a).score == 0
        assert scorer.score(job, printer_b).score > 0
        assert 'Supports PETG' in scorer.score(job, printer_b).reasons

    def test_job_without_material_skips_gate_and_material_points(self, scorer):
        job = make_job(material='')
        printer = make_printer(materials=['Resin'], price_per_gram=Decimal('0.04'))

        match = scorer.score(job, printer)

        # price 15 + availability 10, no material points
        assert match.score == 25
        assert not any(reason.startswith('Supports') for reason in match.reasons)


class TestScoringTiers:

    def test_perfect_match_is_capped_at_100(self, scorer):
        job = make_job(material='PLA', notes='Austin, TX')
        printer = make_printer(
            location='Austin, TX',
            rating=Decimal('4.60'),
            price_per_gram=Decimal('0.04'),
            completed_jobs=120,
        )

        match = scorer.score(job, printer)

        assert match.score == 100
        assert match.reasons == [
            'Supports PLA',
            'Local printer (Austin, TX)',
            'Excellent rating (4.6/5)',
            'Very competitive pricing',
            'Available now',
            'Highly experienced (120 jobs)',
        ]

    def test_unavailable_printer_gets_no_availability_points(self, scorer):
        job = make_job(material='PLA')
        for status in (Printer.STATUS_BUSY, Printer.STATUS_UNAVAILABLE):
            printer = make_printer(status=status)
            match = scorer.score(job, printer)

            # material only: no location signal, no rating, price above every tier
            assert match.score == 30
            assert 'Available now' not in match.reasons

    @pytest.mark.parametrize('rating,points,label', [
        (Decimal('4.50'), 20, 'Excellent rating (4.5/5)'),
        (Decimal('4.20'), 16, 'Good rating (4.2/5)'),
        (Decimal('3.00'), 10, 'Average rating (3/5)'),
        (Decimal('2.90'), 0, None),
    ])
    def test_rating_tiers(self, scorer, rating, points, label):
        job = make_job(material='PLA')
        match = scorer.score(job, make_printer(rating=rating, status=Printer.STATUS_BUSY))

        assert match.score == pytest.approx(30 + points)
        if label:
            assert label in match.reasons

    @pytest.mark.parametrize('price,points', [
        (Decimal('0.05'), 15),
        (Decimal('0.08'), 10.5),
        (Decimal('0.10'), 10.5),
        (Decimal('0.12'), 6),
        (Decimal('0.16'), 0),
    ])
    def test_price_tiers(self, scorer, price, points):
        job = make_job(material='PLA')
        match = scorer.score(job, make_printer(price_per_gram=price, status=Printer.STATUS_BUSY))

        assert match.score == pytest.approx(30 + points)

    @pytest.mark.parametrize('completed,bonus,label', [
        (100, 5, 'Highly experienced (100 jobs)'),
        (60, 3, 'Experienced (60 jobs)'),
        (10, 1, '10 completed jobs'),
        (9, 0, None),
    ])
    def test_experience_bonus(self, scorer, completed, bonus, label):
        job = make_job(material='PLA')
        match = scorer.score(job, make_printer(completed_jobs=completed, status=Printer.STATUS_BUSY))

        assert match.score == 30 + bonus
        if label:
            assert match.reasons[-1] == label

    def test_bonus_only_visible_below_cap(self, scorer):
        job = make_job(material='PLA', notes='Austin')
        # material 30 + location 17.5 + rating 20 + price 15 + availability 10 = 92.5
        printer = make_printer(
            location='Austin, TX',
            rating=Decimal('4.90'),
            price_per_gram=Decimal('0.03'),
        )
        assert scorer.score(job, printer).score == 92.5

        printer.completed_jobs = 150
        assert scorer.score(job, printer).score == 97.5

    def test_score_always_within_bounds(self, scorer):
        for rating in (Decimal('0'), Decimal('3.5'), Decimal('5')):
            for price in (Decimal('0.01'), Decimal('0.12'), Decimal('1.00')):
                for completed in (0, 50, 1000):
                    for status in (Printer.STATUS_AVAILABLE, Printer.STATUS_BUSY):
                        printer = make_printer(
                            rating=rating,
                            price_per_gram=price,
                            completed_jobs=completed,
                            status=status,
                        )
                        score = scorer.score(make_job(notes='Austin, TX'), printer).score
                        assert 0 <= score <= 100


class TestEstimatedCost:

    def test_cost_is_price_times_weight(self, scorer):
        job = make_job(estimated_weight=Decimal('200.00'))
        match = scorer.score(job, make_printer(price_per_gram=Decimal('0.05')))

        assert match.estimated_cost == Decimal('10')

    def test_unknown_weight_costs_zero(self, scorer):
        job = make_job(estimated_weight=None)
        match = scorer.score(job, make_printer())

        assert match.estimated_cost == Decimal('0')


class TestLocationSimilarity:

    def test_exact_match_ignores_case_and_whitespace(self):
        assert location_similarity('Austin, TX', '  austin, tx ') == 1.0

    def test_containment(self):
        assert location_similarity('Austin', 'Austin, TX') == 0.7
        assert location_similarity('Austin, TX, USA', 'austin, tx') == 0.7

    def test_partial_token_overlap(self):
        assert location_similarity('Springfield, IL', 'Chicago, IL') == 0.25

    def test_no_overlap_or_missing_input(self):
        assert location_similarity('Denver', 'Boston') == 0.0
        assert location_similarity('', 'Boston') == 0.0
        assert location_similarity('Denver', None) == 0.0

    def test_regional_reason(self):
        match = MatchScorer().score(
            make_job(notes='Austin'),
            make_printer(location='Austin, TX', status=Printer.STATUS_BUSY),
        )

        assert 'Regional printer (Austin, TX)' in match.reasons
        assert match.score == 47.5

    def test_custom_location_source(self):
        scorer = MatchScorer(location_source=lambda job: 'Austin, TX')
        match = scorer.score(make_job(notes='leave at the front desk'), make_printer(status=Printer.STATUS_BUSY))

        assert 'Local printer (Austin, TX)' in match.reasons
        assert match.score == 55
