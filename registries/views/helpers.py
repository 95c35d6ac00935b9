"""
Shared helper functions for the JSON views.
Includes type hints for better code clarity and IDE support.
"""

import json
import logging
from functools import wraps
from typing import Any, Callable

from django import forms
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_http_methods

from ..constants import BUSY_RETRY_AFTER_SECONDS
from ..errors import (
    ERR_INTERNAL,
    ERR_NOT_AUTHENTICATED,
    AlreadyClaimed,
    Busy,
    InvariantViolation,
    RegistryError,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------------------------------
# JSON Response Helpers
# -------------------------------------------------------------------------------------------------

def json_ok(**payload: Any) -> JsonResponse:
    """Return a successful JSON response with ok=True."""
    data = {"ok": True}
    data.update(payload)
    return JsonResponse(data)


def json_created(**payload: Any) -> JsonResponse:
    response = json_ok(**payload)
    response.status_code = 201
    return response


def json_err(code: str, msg: str, status: int = 400, details: Any = None) -> JsonResponse:
    """Return an error JSON response with ok=False."""
    error = {"code": code, "message": msg}
    if details:
        error["details"] = details
    return JsonResponse({"ok": False, "error": error}, status=status)


def error_response(exc: RegistryError) -> JsonResponse:
    response = JsonResponse({"ok": False, "error": exc.to_dict()}, status=exc.status)
    if isinstance(exc, Busy):
        response["Retry-After"] = str(BUSY_RETRY_AFTER_SECONDS)
    return response


# -------------------------------------------------------------------------------------------------
# Request Parsing
# -------------------------------------------------------------------------------------------------

def parse_json_body(request: HttpRequest) -> dict[str, Any]:
    """Decode a JSON object body. An empty body is an empty object."""
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise ValidationFailed("Request body must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return payload


def form_errors(form: forms.Form) -> dict[str, list[str]]:
    return {
        field: [error["message"] for error in errors]
        for field, errors in form.errors.get_json_data().items()
    }


def validate_payload(form_class: type[forms.Form], payload: dict, partial: bool = False) -> dict[str, Any]:
    """
    Validate ``payload`` with a Django form and return its cleaned data.

    With ``partial`` only the keys present in the payload are validated and
    returned, so PATCH requests leave everything else untouched.
    """
    form = form_class(data=payload)
    if partial:
        for name, field in form.fields.items():
            if name not in payload:
                field.required = False
    if not form.is_valid():
        raise ValidationFailed(details={"errors": form_errors(form)})
    if partial:
        return {name: value for name, value in form.cleaned_data.items() if name in payload}
    return form.cleaned_data


def validate_entries(form_class: type[forms.Form], entries: Any, field: str) -> list[dict[str, Any]]:
    """Validate a list of JSON objects, reporting errors by index."""
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValidationFailed(details={"errors": {field: ["Must be a list"]}})

    cleaned, errors = [], {}
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            errors[f"{field}.{index}"] = ["Must be an object"]
            continue
        form = form_class(data=entry)
        if form.is_valid():
            cleaned.append(form.cleaned_data)
        else:
            for name, messages in form_errors(form).items():
                errors[f"{field}.{index}.{name}"] = messages
    if errors:
        raise ValidationFailed(details={"errors": errors})
    return cleaned


# -------------------------------------------------------------------------------------------------
# View Decorator
# -------------------------------------------------------------------------------------------------

def api_view(*methods: str, auth_required: bool = True) -> Callable:
    """
    Wrap a JSON view: restrict methods, require a session user, and turn
    registry errors into ``{"ok": false, "error": {...}}`` responses.
    """

    def decorator(view: Callable[..., HttpResponse]) -> Callable[..., HttpResponse]:
        @wraps(view)
        def wrapper(request: HttpRequest, *args, **kwargs) -> HttpResponse:
            if auth_required and not request.user.is_authenticated:
                return json_err(ERR_NOT_AUTHENTICATED, "Authentication required", status=401)
            try:
                return view(request, *args, **kwargs)
            except AlreadyClaimed as exc:
                logger.info("Claim conflict on %s: %s", request.path, exc.message)
                return error_response(exc)
            except InvariantViolation as exc:
                logger.error("Invariant violation on %s: %s %s", request.path, exc.message, exc.context)
                return error_response(exc)
            except RegistryError as exc:
                return error_response(exc)
            except Exception:
                logger.exception("Unhandled error on %s %s", request.method, request.path)
                return json_err(ERR_INTERNAL, "Internal server error", status=500)

        return require_http_methods(list(methods))(never_cache(wrapper))

    return decorator
