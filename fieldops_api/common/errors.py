# fieldops_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from fieldops_api.common.http import fail


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class NetworkFailure(Exception):
    """A ledger fetch failed at the transport level or answered non-2xx."""
    def __init__(self, resource: str, message: str, status_code=None):
        super().__init__(f"{resource}: {message}")
        self.resource = resource
        self.status_code = status_code


class PersistencePartialFailure(Exception):
    """Some engineer summaries could not be mirrored to durable storage."""
    def __init__(self, failed_ids):
        self.failed_ids = list(failed_ids)
        super().__init__(f"{len(self.failed_ids)} engineer summaries not persisted: {self.failed_ids}")


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(message=e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _integrity(e: IntegrityError):
        # 409 for unique/FK violations
        from fieldops_api.extensions import db
        db.session.rollback()
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
