"""
API views for the 3D Print Marketplace.

Views validate input with serializers, hand the work to the services built
in ``CoreConfig.ready()`` and translate domain errors into responses.
"""

import logging

from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import MarketplaceError
from .matching import MatchingCriteria
from .models import Notification
from .permissions import IsNotificationRecipient, IsPrinterOwnerAccount
from .serializers import (
    BidCreateSerializer,
    BidSerializer,
    BidWithJobSerializer,
    BidWithPrinterSerializer,
    JobAssignSerializer,
    JobSerializer,
    JobStatusUpdateSerializer,
    MatchQuerySerializer,
    MatchScoreSerializer,
    NotificationSerializer,
    PrinterSearchSerializer,
    PrinterSerializer,
    UserRegistrationSerializer,
)
from .services import get_services

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0]
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip


def refused(request, action, exc):
    """
    Log a refused action and turn the domain error into a response.

    The body carries the human readable ``detail`` and the stable ``code``.
    """
    logger.warning(
        f"Refused {action}: {exc.detail} ({exc.get_codes()}). "
        f"User ID: {request.user.id}, IP: {get_client_ip(request)}"
    )
    return Response(
        {'detail': str(exc.detail), 'code': exc.get_codes()},
        status=exc.status_code
    )


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for user registration.

    POST /api/auth/register/
    Request body: {
        "email": "owner@example.com",
        "password": "...",
        "confirm_password": "...",
        "user_type": "printer_owner"
    }

    Handles concurrent registration attempts with database-level uniqueness.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError:
            # A concurrent registration won the unique email
            return Response(
                {'email': ['A user with that email already exists.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        logger.info(
            f"User registered. Email: {serializer.instance.email}, "
            f"Type: {serializer.instance.user_type}, IP: {get_client_ip(request)}"
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)


# ============================================================================
# Printer Views
# ============================================================================

class PrinterListCreateView(APIView):
    """
    API endpoint for listing and registering printers.

    GET /api/printers/
    Public. Returns every printer, highest rating first.

    POST /api/printers/
    Headers: Authorization: Bearer <access_token>
    Request body: {
        "name": "Prusa MK4",
        "location": "Austin, TX",
        "materials": ["PLA", "PETG"],
        "price_per_gram": "0.05"
    }

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: Account is not a printer owner account
    - 400: Invalid data
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated(), IsPrinterOwnerAccount()]

    def get(self, request, *args, **kwargs):
        printers = get_services().printers.list_all()
        return Response(PrinterSerializer(printers, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = PrinterSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        printer = serializer.save()

        logger.info(
            f"Printer registered. Printer ID: {printer.id}, Owner: {request.user.email}, "
            f"Materials: {printer.materials}, IP: {get_client_ip(request)}"
        )
        return Response(PrinterSerializer(printer).data, status=status.HTTP_201_CREATED)


class PrinterSearchView(APIView):
    """
    API endpoint for searching printers.

    GET /api/printers/search/?materials=PLA,PETG&location=austin&min_price=0.01&max_price=0.10&status=available

    All filters are optional. A printer matches the materials filter if
    it supports any of the listed materials.
    """
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        serializer = PrinterSearchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        filters = serializer.validated_data

        printers = get_services().printers.search(
            materials=filters.get('materials'),
            location=filters.get('location') or None,
            min_price=filters.get('min_price'),
            max_price=filters.get('max_price'),
            status=filters.get('status'),
        )
        return Response(PrinterSerializer(printers, many=True).data)


class MyPrintersView(APIView):
    """GET /api/printers/my/ - the authenticated user's printers."""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        printers = get_services().printers.list_by_owner(request.user.id)
        return Response(PrinterSerializer(printers, many=True).data)


class PrinterBidsView(APIView):
    """
    API endpoint for the bid history of one printer.

    GET /api/printers/<printer_id>/bids/
    Only the printer's owner may call it. Each bid includes its job.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, printer_id, *args, **kwargs):
        try:
            bids = get_services().ledger.list_printer_bids(printer_id, request.user.id)
        except MarketplaceError as e:
            return refused(request, f"printer {printer_id} bid listing", e)

        return Response(BidWithJobSerializer(bids, many=True).data)


# ============================================================================
# Job Views
# ============================================================================

class JobListCreateView(APIView):
    """
    API endpoint for listing and creating print jobs.

    GET /api/jobs/
    Returns every job, newest first.

    POST /api/jobs/
    Request body: {
        "file_name": "bracket.stl",
        "material": "PETG",
        "estimated_weight": "120.00",
        "notes": "Austin, TX"
    }
    The customer is the authenticated user.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        jobs = get_services().jobs.list_all()
        return Response(JobSerializer(jobs, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = JobSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        job = serializer.save()

        logger.info(
            f"Job created. Job ID: {job.id}, Customer: {request.user.email}, "
            f"Material: {job.material or 'any'}, IP: {get_client_ip(request)}"
        )
        return Response(JobSerializer(job).data, status=status.HTTP_201_CREATED)


class MyJobsView(APIView):
    """GET /api/jobs/my/ - jobs the authenticated user created."""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        jobs = get_services().jobs.list_by_customer(request.user.id)
        return Response(JobSerializer(jobs, many=True).data)


class JobDetailView(APIView):
    """GET /api/jobs/<job_id>/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, job_id, *args, **kwargs):
        job = get_services().jobs.get(job_id)
        if job is None:
            return Response(
                {'detail': f'Job with ID {job_id} does not exist.', 'code': 'job_not_found'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(JobSerializer(job).data)


class JobMatchesView(APIView):
    """
    API endpoint for ranked printer matches.

    GET /api/jobs/<job_id>/matches/?limit=5
    GET /api/jobs/<job_id>/matches/?material=PLA&location=austin&max_price=0.10&min_rating=4

    Success response (200):
    {
        "matches": [
            {
                "printer": {...},
                "score": 87.5,
                "reasons": ["Supports PLA", "Excellent rating (4.8/5)", "Available now"],
                "estimated_cost": "6.00"
            }
        ],
        "count": 1
    }

    Error responses:
    - 400: Invalid query parameters
    - 404: Job not found
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, job_id, *args, **kwargs):
        query = MatchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        ranker = get_services().ranker

        try:
            if query.has_criteria():
                criteria = MatchingCriteria(
                    material=params.get('material') or None,
                    location=params.get('location') or None,
                    max_price=params.get('max_price'),
                    min_rating=params.get('min_rating'),
                )
                matches = ranker.find_matches_with_criteria(job_id, criteria, limit=params.get('limit'))
            else:
                matches = ranker.find_matches(job_id, limit=params.get('limit'))
        except MarketplaceError as e:
            return refused(request, f"match lookup for job {job_id}", e)

        return Response({
            'matches': MatchScoreSerializer(matches, many=True).data,
            'count': len(matches),
        })


class JobBestMatchView(APIView):
    """
    GET /api/jobs/<job_id>/best-match/

    Returns the single best match, or ``{"match": null}`` when no printer
    is compatible.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, job_id, *args, **kwargs):
        try:
            match = get_services().ranker.get_best_match(job_id)
        except MarketplaceError as e:
            return refused(request, f"best match lookup for job {job_id}", e)

        return Response({'match': MatchScoreSerializer(match).data if match else None})


class JobStatusUpdateView(APIView):
    """
    API endpoint for job status changes.

    PUT /api/jobs/<job_id>/status/
    Request body: {"status": "printing"}

    - printing, completed: assigned printer's owner only
    - cancelled: the job's customer only; pending bids are rejected

    Error responses:
    - 400: Unknown or disallowed status
    - 403: Actor may not drive this change
    - 404: Job not found
    - 409: Transition not allowed from the current status
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, job_id, *args, **kwargs):
        serializer = JobStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        try:
            job = get_services().lifecycle.update_status(job_id, request.user.id, new_status)
        except MarketplaceError as e:
            return refused(request, f"status change of job {job_id} to {new_status}", e)

        logger.info(
            f"Job status updated. Job ID: {job.id}, Status: {job.status}, "
            f"By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response(JobSerializer(job).data)


class JobAssignView(APIView):
    """
    API endpoint for taking an open job directly.

    PUT /api/jobs/<job_id>/assign/
    Request body: {"printer_id": 3}

    The printer must belong to the caller, be available and support the
    job's material. Pending bids on the job are rejected.
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, job_id, *args, **kwargs):
        serializer = JobAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        printer_id = serializer.validated_data['printer_id']

        try:
            job = get_services().lifecycle.assign_printer(job_id, request.user.id, printer_id)
        except MarketplaceError as e:
            return refused(request, f"assignment of job {job_id} to printer {printer_id}", e)

        logger.info(
            f"Job assigned. Job ID: {job.id}, Printer ID: {printer_id}, "
            f"By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response(JobSerializer(job).data)


# ============================================================================
# Bid Views
# ============================================================================

class JobBidsView(APIView):
    """
    API endpoint for bids on a job.

    POST /api/jobs/<job_id>/bids/
    Request body: {
        "printer_id": 3,
        "amount": "25.00",
        "estimated_completion_days": 3,
        "notes": "Can start tomorrow"
    }

    Success response (201): the created bid.

    Error responses:
    - 400: Invalid amount, days or notes
    - 403: Own job, or caller owns no printer / not this printer
    - 404: Job or printer not found
    - 409: Job assigned, bid limit reached, or duplicate pending bid

    GET /api/jobs/<job_id>/bids/
    The job's customer receives the three cheapest pending bids (ties go to
    the faster bid) with printer profiles; anyone else receives only the
    bids placed by their own printers.

    Success response (200):
    {
        "bids": [...],
        "total": 4,
        "showing": 3
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, job_id, *args, **kwargs):
        try:
            listing = get_services().ledger.list_bids(job_id, request.user.id)
        except MarketplaceError as e:
            return refused(request, f"bid listing for job {job_id}", e)

        return Response({
            'bids': BidWithPrinterSerializer(listing.bids, many=True).data,
            'total': listing.total,
            'showing': listing.showing,
        })

    def post(self, request, job_id, *args, **kwargs):
        serializer = BidCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            bid = get_services().ledger.submit_bid(
                job_id,
                request.user.id,
                data['printer_id'],
                data['amount'],
                data['estimated_completion_days'],
                data.get('notes', ''),
            )
        except MarketplaceError as e:
            return refused(request, f"bid on job {job_id}", e)

        logger.info(
            f"Bid submitted. Bid ID: {bid.id}, Job ID: {job_id}, Amount: {bid.amount}, "
            f"By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response(BidSerializer(bid).data, status=status.HTTP_201_CREATED)


class BidAcceptView(APIView):
    """
    API endpoint for accepting a bid.

    PUT /api/bids/<bid_id>/accept/

    Assigns the bid's printer to the job at the bid amount, marks the job
    matched and rejects every other pending bid, all in one transaction.

    Success response (200):
    {
        "bid": {...},
        "job": {...},
        "rejected_bid_ids": [4, 7]
    }

    Error responses:
    - 403: Caller is not the job's customer
    - 404: Bid or job not found
    - 409: Bid no longer pending, or job already assigned
    """
    permission_classes = [IsAuthenticated]

    def put(self, request, bid_id, *args, **kwargs):
        try:
            result = get_services().ledger.accept_bid(bid_id, request.user.id)
        except MarketplaceError as e:
            return refused(request, f"acceptance of bid {bid_id}", e)

        logger.info(
            f"Bid accepted. Bid ID: {result.bid.id}, Job ID: {result.job.id}, "
            f"By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response({
            'bid': BidSerializer(result.bid).data,
            'job': JobSerializer(result.job).data,
            'rejected_bid_ids': result.rejected_bid_ids,
        })


class BidRejectView(APIView):
    """PUT /api/bids/<bid_id>/reject/ - the job's customer declines one bid."""
    permission_classes = [IsAuthenticated]

    def put(self, request, bid_id, *args, **kwargs):
        try:
            bid = get_services().ledger.reject_bid(bid_id, request.user.id)
        except MarketplaceError as e:
            return refused(request, f"rejection of bid {bid_id}", e)

        logger.info(
            f"Bid rejected. Bid ID: {bid.id}, By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response(BidSerializer(bid).data)


class BidWithdrawView(APIView):
    """PUT /api/bids/<bid_id>/withdraw/ - the bidder pulls a pending bid."""
    permission_classes = [IsAuthenticated]

    def put(self, request, bid_id, *args, **kwargs):
        try:
            bid = get_services().ledger.withdraw_bid(bid_id, request.user.id)
        except MarketplaceError as e:
            return refused(request, f"withdrawal of bid {bid_id}", e)

        logger.info(
            f"Bid withdrawn. Bid ID: {bid.id}, By: {request.user.email}, IP: {get_client_ip(request)}"
        )
        return Response(BidSerializer(bid).data)


# ============================================================================
# Notification Views
# ============================================================================

class NotificationListView(generics.ListAPIView):
    """GET /api/notifications/ - the caller's notifications, newest first."""
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)


class NotificationReadView(APIView):
    """PUT /api/notifications/<notification_id>/read/"""
    permission_classes = [IsAuthenticated, IsNotificationRecipient]

    def put(self, request, notification_id, *args, **kwargs):
        notification = Notification.objects.filter(pk=notification_id).first()
        if notification is None:
            return Response(
                {'detail': 'Notification not found.'},
                status=status.HTTP_404_NOT_FOUND
            )

        self.check_object_permissions(request, notification)

        if not notification.read:
            notification.read = True
            notification.save(update_fields=['read'])

        return Response(NotificationSerializer(notification).data)
