"""
Error handling for the GraphQL endpoint.
"""
import logging

from ariadne import format_error as default_format_error
from ariadne import unwrap_graphql_error
from django.http import JsonResponse
from graphql import GraphQLError

from order_lifecycle.domain.errors import OrderLifecycleError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Maps lifecycle errors to codes and HTTP statuses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "NOT_REFUNDABLE": 400,
        "REFUND_WINDOW_EXPIRED": 400,
        "REFUND_ALREADY_REQUESTED": 409,
        "REFUND_ALREADY_RESOLVED": 409,
        "PARTIAL_REFUND_EXISTS": 409,
        "ITEMS_ALREADY_REFUNDED": 409,
        "USE_FULL_REFUND": 400,
        "ALREADY_CONFIRMED": 409,
        "NOT_FOUND": 404,
        "INVALID_STATE": 409,
        "CONCURRENT_MODIFICATION": 409,
        "PAYMENT_FAILED": 402,
        "CONSISTENCY_ERROR": 500,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def status_for(cls, code: str) -> int:
        return cls.ERROR_CODES.get(code, 400)

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """JSON response for an error raised outside GraphQL execution."""
        if isinstance(error, OrderLifecycleError):
            return JsonResponse(
                {"error": {"code": error.code, "message": error.message}},
                status=cls.status_for(error.code),
            )

        logger.error(
            "unexpected_error",
            extra={
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        return JsonResponse(
            {"error": {"code": "INTERNAL_ERROR", "message": "An internal error occurred"}},
            status=500,
        )


def format_error(error: GraphQLError, debug: bool = False) -> dict:
    """Add ``extensions.code`` so callers can tell the error kinds apart."""
    formatted = default_format_error(error, debug)
    original = unwrap_graphql_error(error)
    extensions = dict(formatted.get("extensions") or {})

    if isinstance(original, OrderLifecycleError):
        extensions["code"] = original.code
    elif original is not error and error.path:
        logger.error(
            "graphql_resolver_error",
            extra={"error_type": type(original).__name__, "error": str(original)},
            exc_info=original,
        )
        extensions["code"] = "INTERNAL_ERROR"
        if not debug:
            formatted["message"] = "An internal error occurred"
    else:
        extensions.setdefault("code", "GRAPHQL_VALIDATION_FAILED")

    formatted["extensions"] = extensions
    return formatted
