"""
Custom permission classes for the 3D Print Marketplace.
"""

from rest_framework import permissions


class IsPrinterOwnerAccount(permissions.BasePermission):
    """
    Permission class that allows only printer owner accounts.

    This permission checks if the authenticated user has
    user_type='printer_owner'. Customers get 403 Forbidden.

    Usage:
        class PrinterListCreateView(APIView):
            permission_classes = [IsAuthenticated, IsPrinterOwnerAccount]
    """

    message = 'Only printer owner accounts can register printers.'

    def has_permission(self, request, view):
        """
        Check if user is authenticated and signed up as a printer owner.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user is a printer owner account, False otherwise
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return getattr(request.user, 'user_type', None) == 'printer_owner'


class IsNotificationRecipient(permissions.BasePermission):
    """
    Object-level permission: only the recipient may touch a notification.
    """

    message = 'You do not have permission to access this notification.'

    def has_object_permission(self, request, view, obj):
        return obj.user_id == request.user.id
