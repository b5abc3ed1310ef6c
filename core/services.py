"""
Construction of the marketplace services from settings.

The services are built once when the ``core`` app is ready and reached
through ``get_services()``; nothing here keeps module-level state.
"""

from dataclasses import dataclass

from django.apps import apps
from django.conf import settings
from django.utils.module_loading import import_string

from .bidding import BidLedger
from .directory import JobStore, PrinterDirectory
from .jobs import JobLifecycle
from .matching import MatchRanker, MatchScorer, location_from_field


DEFAULTS = {
    'MAX_PENDING_BIDS': 5,
    'CUSTOMER_BID_VIEW_LIMIT': 3,
    'BID_NOTES_MAX_LENGTH': 500,
    'DEFAULT_MATCH_LIMIT': 10,
    'MAX_MATCH_LIMIT': 50,
    'JOB_LOCATION_FIELD': 'notes',
    'NOTIFICATION_SINK': 'core.notifications.DatabaseNotificationSink',
}


def marketplace_setting(name):
    """Read one value from ``settings.MARKETPLACE``, falling back to DEFAULTS."""
    return getattr(settings, 'MARKETPLACE', {}).get(name, DEFAULTS[name])


@dataclass
class MarketplaceServices:
    printers: PrinterDirectory
    jobs: JobStore
    notifier: object
    scorer: MatchScorer
    ranker: MatchRanker
    ledger: BidLedger
    lifecycle: JobLifecycle


def build_services(notifier=None):
    """
    Wire every service from the current settings.

    Args:
        notifier: Sink to use instead of ``MARKETPLACE['NOTIFICATION_SINK']``

    Returns:
        MarketplaceServices
    """
    if notifier is None:
        notifier = import_string(marketplace_setting('NOTIFICATION_SINK'))()

    printers = PrinterDirectory()
    jobs = JobStore()
    scorer = MatchScorer(location_source=location_from_field(marketplace_setting('JOB_LOCATION_FIELD')))

    return MarketplaceServices(
        printers=printers,
        jobs=jobs,
        notifier=notifier,
        scorer=scorer,
        ranker=MatchRanker(
            scorer,
            printers,
            jobs,
            default_limit=marketplace_setting('DEFAULT_MATCH_LIMIT'),
        ),
        ledger=BidLedger(
            printers,
            jobs,
            notifier,
            max_pending_bids=marketplace_setting('MAX_PENDING_BIDS'),
            customer_view_limit=marketplace_setting('CUSTOMER_BID_VIEW_LIMIT'),
            notes_max_length=marketplace_setting('BID_NOTES_MAX_LENGTH'),
        ),
        lifecycle=JobLifecycle(printers, jobs, notifier),
    )


def get_services():
    """Return the services built by ``CoreConfig.ready()``."""
    return apps.get_app_config('core').services
