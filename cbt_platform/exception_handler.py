import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from assessments.exceptions import SessionEngineError

logger = logging.getLogger(__name__)


def engine_exception_handler(exc, context):
    """Answers exam session engine errors with {"error", "code"}; defers everything else to DRF."""
    if isinstance(exc, SessionEngineError):
        logger.info("Rejected %s: %s (%s)", context.get('view').__class__.__name__, exc.message, exc.code)
        return Response({"error": exc.message, "code": exc.code}, status=exc.status_code)
    return exception_handler(exc, context)
