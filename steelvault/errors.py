"""
Error taxonomy shared by the services and the API blueprints.

Every error carries the HTTP status the API answers with, so routes can simply
raise and let the handler registered in ``create_app`` render the JSON body.
"""

from datetime import datetime, timezone


class DashboardError(Exception):
    status_code = 500
    default_message = 'Unexpected server error'

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        payload = {
            'error': self.message,
            'status_code': self.status_code,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        if self.details:
            payload.update(self.details)
        return payload


class InvalidCredentials(DashboardError):
    status_code = 401
    default_message = 'Invalid email or password.'


class AccessDenied(DashboardError):
    status_code = 403
    default_message = 'Insufficient permissions'


class NotFound(DashboardError):
    status_code = 404
    default_message = 'Record not found'


class ValidationError(DashboardError):
    status_code = 400
    default_message = 'Invalid request data'


class BackendUnavailable(DashboardError):
    status_code = 503
    default_message = 'The data backend is unavailable'
