"""
URL configuration for the print_marketplace project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import (
    BidAcceptView,
    BidRejectView,
    BidWithdrawView,
    JobAssignView,
    JobBestMatchView,
    JobBidsView,
    JobDetailView,
    JobListCreateView,
    JobMatchesView,
    JobStatusUpdateView,
    MyJobsView,
    MyPrintersView,
    NotificationListView,
    NotificationReadView,
    PrinterBidsView,
    PrinterListCreateView,
    PrinterSearchView,
    UserRegistrationView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Printer endpoints
    path('api/printers/', PrinterListCreateView.as_view(), name='printer_list_create'),
    path('api/printers/search/', PrinterSearchView.as_view(), name='printer_search'),
    path('api/printers/my/', MyPrintersView.as_view(), name='my_printers'),
    path('api/printers/<int:printer_id>/bids/', PrinterBidsView.as_view(), name='printer_bids'),

    # Job endpoints
    path('api/jobs/', JobListCreateView.as_view(), name='job_list_create'),
    path('api/jobs/my/', MyJobsView.as_view(), name='my_jobs'),
    path('api/jobs/<int:job_id>/', JobDetailView.as_view(), name='job_detail'),
    path('api/jobs/<int:job_id>/matches/', JobMatchesView.as_view(), name='job_matches'),
    path('api/jobs/<int:job_id>/best-match/', JobBestMatchView.as_view(), name='job_best_match'),
    path('api/jobs/<int:job_id>/status/', JobStatusUpdateView.as_view(), name='job_status_update'),
    path('api/jobs/<int:job_id>/assign/', JobAssignView.as_view(), name='job_assign'),

    # Bid endpoints
    path('api/jobs/<int:job_id>/bids/', JobBidsView.as_view(), name='job_bids'),
    path('api/bids/<int:bid_id>/accept/', BidAcceptView.as_view(), name='bid_accept'),
    path('api/bids/<int:bid_id>/reject/', BidRejectView.as_view(), name='bid_reject'),
    path('api/bids/<int:bid_id>/withdraw/', BidWithdrawView.as_view(), name='bid_withdraw'),

    # Notification endpoints
    path('api/notifications/', NotificationListView.as_view(), name='notification_list'),
    path('api/notifications/<int:notification_id>/read/', NotificationReadView.as_view(), name='notification_read'),
]
