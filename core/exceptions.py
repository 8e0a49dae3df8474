"""
Error taxonomy for the job engagement engine and the API error envelope.

Every business-rule rejection is an APIException subclass with a stable
``default_code``. The exception handler renders all API errors as::

    {"detail": "<message>", "code": "<code>", ...extra}

Validation errors additionally carry the per-field messages under "errors".
"""

import math

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, status
from rest_framework.serializers import as_serializer_error
from rest_framework.views import exception_handler


class EngagementError(exceptions.APIException):
    """
    Base class for lifecycle rule violations.

    Keyword arguments beyond ``detail`` and ``code`` are rendered as extra
    keys in the error envelope.
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The operation is not permitted in the current state.'
    default_code = 'conflict'

    def __init__(self, detail=None, code=None, **extra):
        super().__init__(detail, code)
        self.extra = extra


class Forbidden(EngagementError):
    """Caller has the wrong role or does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'


class InvalidTransition(EngagementError):
    """Requested transition is not an edge of the state machine."""

    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


class CooldownActive(EngagementError):
    default_detail = 'You must wait before re-applying to this job.'
    default_code = 'cooldown_active'

    def __init__(self, seconds_remaining, detail=None):
        seconds_remaining = max(int(math.ceil(seconds_remaining)), 0)
        if detail is None:
            detail = f'Cooldown remaining: {format_minutes(seconds_remaining)}.'
        super().__init__(detail, seconds_remaining=seconds_remaining)
        self.seconds_remaining = seconds_remaining


class AlreadyReviewed(EngagementError):
    default_detail = 'You have already reviewed this user for this job.'
    default_code = 'already_reviewed'


class AlreadyEdited(EngagementError):
    default_detail = 'This review has already been edited and cannot be edited again.'
    default_code = 'already_edited'


class NotEligible(EngagementError):
    """Rater/ratee relationship does not create a rating obligation."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not eligible to review this user for this job.'
    default_code = 'not_eligible'


class NotFound(exceptions.NotFound):
    default_code = 'not_found'


class MatchingUnavailable(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The matching service is unavailable.'
    default_code = 'matching_unavailable'


def format_minutes(seconds):
    """
    Render a duration for display, rounding up to whole minutes.

    Args:
        seconds: Duration in seconds

    Returns:
        str: e.g. '1 minute', '42 minutes'
    """
    minutes = max(int(math.ceil(seconds / 60)), 1) if seconds > 0 else 0
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: 'invalid',
    status.HTTP_401_UNAUTHORIZED: 'not_authenticated',
    status.HTTP_403_FORBIDDEN: 'forbidden',
    status.HTTP_404_NOT_FOUND: 'not_found',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'method_not_allowed',
    status.HTTP_409_CONFLICT: 'conflict',
    status.HTTP_429_TOO_MANY_REQUESTS: 'throttled',
}


def api_exception_handler(exc, context):
    """
    DRF exception handler producing the canonical error envelope.

    Django model ValidationErrors raised from full_clean() are converted to
    400 responses instead of surfacing as server errors.

    Args:
        exc: Raised exception
        context: DRF handler context (view, request, ...)

    Returns:
        Response or None: None lets Django handle the error as a 500
    """
    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(detail=as_serializer_error(exc))

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            'detail': 'Invalid input.',
            'code': 'invalid',
            'errors': response.data,
        }
        return response

    data = response.data
    detail = data.get('detail', '') if isinstance(data, dict) else data

    code = exc.get_codes() if isinstance(exc, exceptions.APIException) else None
    if not isinstance(code, str) and isinstance(data, dict):
        # SimpleJWT token errors carry their code inside a dict detail
        code = data.get('code')
    if not isinstance(code, str):
        code = _STATUS_CODES.get(response.status_code, 'error')

    envelope = {'detail': str(detail), 'code': str(code)}
    envelope.update(getattr(exc, 'extra', None) or {})
    response.data = envelope
    return response
