"""
=============================================================================
ERRORS.PY — Domain errors
=============================================================================
Store and social functions raise these; main.py turns them into JSON
responses with a single exception handler. None of them is fatal.

  NotFoundError         → 404  habit or user does not exist
  ForbiddenError        → 403  habit belongs to someone else
  DuplicatePeriodError  → 409  already checked in for this day/week
  ValidationError       → 400  bad name, frequency, id...
"""

from fastapi import status


class TrackifyError(Exception):
    """Base of every error a request can recover from"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(TrackifyError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ForbiddenError(TrackifyError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class DuplicatePeriodError(TrackifyError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already checked in for this period"


class ValidationError(TrackifyError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid data"
