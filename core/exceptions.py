"""
Domain errors raised by the marketplace services.

They subclass DRF's APIException so a view can hand ``status_code`` and
``detail`` straight to the response. Each error carries a stable code
(``exc.get_codes()``) that clients and tests can branch on.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class MarketplaceError(APIException):
    """Base class for every error the marketplace services raise."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be completed.'
    default_code = 'marketplace_error'


class ResourceNotFound(MarketplaceError):
    """A referenced job, printer or bid does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class ActionForbidden(MarketplaceError):
    """The actor lacks the relationship the operation requires."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class StateConflict(MarketplaceError):
    """The operation would break an invariant under the current state."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state.'
    default_code = 'conflict'


class InvalidInput(MarketplaceError):
    """Malformed input, rejected before any state is touched."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'
