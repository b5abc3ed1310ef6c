"""
Job-to-printer matching.

``MatchScorer`` rates one (job, printer) pair with a weighted additive model;
``MatchRanker`` scores the live printer population for a job and returns the
best candidates. Scores are recomputed on every call and never stored.

Scoring model (weights sum to 100, experience bonus added on top, final
score capped at 100):

    material      30  hard gate: a missing required material scores 0
    location      25  string similarity of job location signal vs printer
    rating        20  tiered: >=4.5 full, >=4.0 80%, >=3.0 50%
    price         15  tiered on price per gram: <=0.05 full, <=0.10 70%, <=0.15 40%
    availability  10  printer status is available
    experience    +5 / +3 / +1 for 100 / 50 / 10 completed jobs
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional

from .exceptions import ResourceNotFound
from .models import Printer

logger = logging.getLogger(__name__)


WEIGHTS = {
    'material': 30,
    'location': 25,
    'rating': 20,
    'price': 15,
    'availability': 10,
}

MAX_SCORE = 100

_TOKEN_SPLIT = re.compile(r'[,\s]+')


@dataclass
class MatchScore:
    """Compatibility of one printer with one job."""
    printer: Printer
    score: float
    reasons: List[str] = field(default_factory=list)
    estimated_cost: Decimal = Decimal('0')


@dataclass
class MatchingCriteria:
    """Optional narrowing filters for ``MatchRanker.find_matches_with_criteria``."""
    material: Optional[str] = None
    location: Optional[str] = None
    max_price: Optional[Decimal] = None
    min_rating: Optional[Decimal] = None


def location_similarity(job_location, printer_location):
    """
    Compare two free-text locations.

    Returns 1.0 for a case-insensitive exact match, 0.7 when one contains
    the other, otherwise 0.5 scaled by the share of overlapping tokens
    (comma/whitespace separated, matched exactly or by containment), and
    0.0 when nothing overlaps.
    """
    if not job_location or not printer_location:
        return 0.0

    job_lower = job_location.lower().strip()
    printer_lower = printer_location.lower().strip()
    if not job_lower or not printer_lower:
        return 0.0

    if job_lower == printer_lower:
        return 1.0

    if printer_lower in job_lower or job_lower in printer_lower:
        return 0.7

    job_parts = [part for part in _TOKEN_SPLIT.split(job_lower) if part]
    printer_parts = [part for part in _TOKEN_SPLIT.split(printer_lower) if part]
    if not job_parts or not printer_parts:
        return 0.0

    common = [
        part for part in job_parts
        if any(p == part or part in p or p in part for p in printer_parts)
    ]
    if not common:
        return 0.0

    return 0.5 * (len(common) / max(len(job_parts), len(printer_parts)))


def location_from_field(field_name):
    """Build a location source reading ``field_name`` off a job."""
    def source(job):
        return getattr(job, field_name, '') or ''
    return source


class MatchScorer:
    """
    Pure scoring of one job against one printer.

    Args:
        location_source: Callable returning the job's location signal.
            Defaults to the job's ``notes`` text.
    """

    def __init__(self, location_source: Optional[Callable] = None):
        self.location_source = location_source or location_from_field('notes')

    def score(self, job, printer) -> MatchScore:
        score = 0.0
        reasons = []

        # Material compatibility (hard gate)
        if job.material:
            if not printer.supports_material(job.material):
                return MatchScore(
                    printer=printer,
                    score=0,
                    reasons=[f'Does not support required material: {job.material}'],
                    estimated_cost=Decimal('0'),
                )
            score += WEIGHTS['material']
            reasons.append(f'Supports {job.material}')

        # Location proximity
        similarity = location_similarity(self.location_source(job), printer.location)
        score += similarity * WEIGHTS['location']
        if similarity > 0.7:
            reasons.append(f'Local printer ({printer.location})')
        elif similarity > 0.3:
            reasons.append(f'Regional printer ({printer.location})')

        # Rating
        rating = float(printer.rating or 0)
        if rating >= 4.5:
            score += WEIGHTS['rating']
            reasons.append(f'Excellent rating ({rating:g}/5)')
        elif rating >= 4.0:
            score += WEIGHTS['rating'] * 0.8
            reasons.append(f'Good rating ({rating:g}/5)')
        elif rating >= 3.0:
            score += WEIGHTS['rating'] * 0.5
            reasons.append(f'Average rating ({rating:g}/5)')

        # Price competitiveness
        price_per_gram = Decimal(str(printer.price_per_gram))
        if price_per_gram <= Decimal('0.05'):
            score += WEIGHTS['price']
            reasons.append('Very competitive pricing')
        elif price_per_gram <= Decimal('0.10'):
            score += WEIGHTS['price'] * 0.7
            reasons.append('Good pricing')
        elif price_per_gram <= Decimal('0.15'):
            score += WEIGHTS['price'] * 0.4

        if job.estimated_weight is not None:
            estimated_cost = price_per_gram * Decimal(str(job.estimated_weight))
        else:
            estimated_cost = Decimal('0')

        # Availability
        if printer.status == Printer.STATUS_AVAILABLE:
            score += WEIGHTS['availability']
            reasons.append('Available now')

        # Experience bonus, applied before the cap
        completed = printer.completed_jobs or 0
        if completed >= 100:
            score += 5
            reasons.append(f'Highly experienced ({completed} jobs)')
        elif completed >= 50:
            score += 3
            reasons.append(f'Experienced ({completed} jobs)')
        elif completed >= 10:
            score += 1
            reasons.append(f'{completed} completed jobs')

        return MatchScore(
            printer=printer,
            score=min(round(score, 2), MAX_SCORE),
            reasons=reasons,
            estimated_cost=estimated_cost,
        )


class MatchRanker:
    """
    Ranks the printer population for a job.

    Args:
        scorer: MatchScorer used for every candidate
        printers: PrinterDirectory supplying candidates
        jobs: JobStore resolving job ids
        default_limit: Number of matches returned when no limit is given
    """

    def __init__(self, scorer, printers, jobs, default_limit=10):
        self.scorer = scorer
        self.printers = printers
        self.jobs = jobs
        self.default_limit = default_limit

    def _get_job(self, job_id):
        job = self.jobs.get(job_id)
        if job is None:
            raise ResourceNotFound(f'Job with ID {job_id} does not exist.', code='job_not_found')
        return job

    def _rank(self, job, candidates, limit, keep=None):
        matches = [self.scorer.score(job, printer) for printer in candidates]
        matches = [match for match in matches if match.score > 0]
        if keep is not None:
            matches = [match for match in matches if keep(match)]
        # sorted() is stable: ties keep directory order
        matches = sorted(matches, key=lambda match: match.score, reverse=True)
        return matches[:limit]

    def find_matches(self, job_id, limit=None):
        """Return the best ``limit`` matches among available printers."""
        limit = self.default_limit if limit is None else limit
        job = self._get_job(job_id)
        candidates = self.printers.search(status=Printer.STATUS_AVAILABLE)
        matches = self._rank(job, candidates, limit)
        logger.debug(f"Job {job_id}: {len(matches)} matches from {len(candidates)} candidates")
        return matches

    def find_matches_with_criteria(self, job_id, criteria, limit=None):
        """
        Like ``find_matches`` with the candidate pool narrowed first.

        Material, location and maximum price are applied by the directory;
        minimum rating filters the scored matches.
        """
        limit = self.default_limit if limit is None else limit
        job = self._get_job(job_id)

        candidates = self.printers.search(
            materials=[criteria.material] if criteria.material else None,
            location=criteria.location or None,
            max_price=criteria.max_price,
            status=Printer.STATUS_AVAILABLE,
        )

        keep = None
        if criteria.min_rating:
            min_rating = Decimal(str(criteria.min_rating))
            keep = lambda match: Decimal(str(match.printer.rating or 0)) >= min_rating

        return self._rank(job, candidates, limit, keep=keep)

    def get_best_match(self, job_id):
        """Return the single best match for a job, or None."""
        matches = self.find_matches(job_id, limit=1)
        return matches[0] if matches else None
