"""
Error handling views.
Project-wide 404 and 500 handlers, rendered as JSON like the rest of the API.
"""

import logging

from django.http import HttpRequest, JsonResponse

from ..errors import ERR_INTERNAL, ERR_NOT_FOUND
from .helpers import json_err

logger = logging.getLogger(__name__)


def error_404(request: HttpRequest, exception: Exception) -> JsonResponse:
    logger.warning("404 error for path: %s", request.path, extra={"request": request})
    return json_err(ERR_NOT_FOUND, "Not found", status=404)


def error_500(request: HttpRequest) -> JsonResponse:
    logger.error("500 error for path: %s", request.path, extra={"request": request})
    return json_err(ERR_INTERNAL, "Internal server error", status=500)
