"""
GraphQL view with structured request logging.
"""
import json
import logging
from uuid import uuid4

from ariadne import graphql_sync
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from order_lifecycle.api.middleware import ErrorHandler, format_error
from order_lifecycle.api.schema import schema

logger = logging.getLogger(__name__)


class OrderLifecycleGraphQLView:
    """Executes GraphQL requests against the order lifecycle schema."""

    def dispatch(self, request, *args, **kwargs):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        user_id = request.headers.get("X-User-ID")
        logger.info(
            "graphql_request",
            extra={"request_id": request_id, "user_id": user_id, "operation": "graphql"},
        )

        try:
            response = self._process_graphql_request(request)
        except Exception as e:
            response = ErrorHandler.handle_error(e)
            logger.error(
                "graphql_error",
                extra={"request_id": request_id, "user_id": user_id, "error": str(e)},
            )

        logger.info(
            "graphql_response",
            extra={"request_id": request_id, "user_id": user_id, "status": response.status_code},
        )
        response["X-Request-ID"] = request_id
        return response

    def _process_graphql_request(self, request):
        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse(
                {"error": {"code": "VALIDATION_ERROR", "message": "Invalid JSON"}},
                status=400,
            )

        success, result = graphql_sync(
            schema,
            data,
            context_value={"request": request},
            error_formatter=format_error,
            debug=settings.DEBUG,
        )
        status_code = 200 if success else 400
        return JsonResponse(result, status=status_code)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = OrderLifecycleGraphQLView()
    return view.dispatch(request)
