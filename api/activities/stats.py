"""Dashboard statistics endpoint for the authenticated user."""

import asyncio

from src.services.activity_stats import get_user_stats
from src.utils.logging import correlation_context, get_structured_logger, setup_logging
from src.utils.logging_config import LoggingConfig
from src.utils.responses import actor_from_request, error_response, json_response

setup_logging()
logger = get_structured_logger(__name__)


def handler(request):
    """GET /api/activities/stats?period=last_week|last_month|last_year"""
    correlation_id = LoggingConfig.correlation_id_from_headers(request.get("headers"))
    with correlation_context(correlation_id):
        try:
            actor = actor_from_request(request)
            period = (request.get("query", {}) or {}).get("period", "last_month")

            stats = asyncio.run(get_user_stats(actor, period=period))
            return json_response(200, {"success": True, "data": stats})
        except Exception as e:
            response = error_response(e)
            if response["statusCode"] >= 500:
                logger.error("Error computing user stats", exc_info=True, error=str(e))
            return response
