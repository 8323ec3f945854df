"""Activity detail endpoint: hydrated activity, tasks, assignees and the viewer's permissions."""

import asyncio

from src.services.activity_aggregate import ActivityAggregate
from src.models.user import Actor
from src.utils.errors import ValidationError
from src.utils.logging import correlation_context, get_structured_logger, setup_logging
from src.utils.logging_config import LoggingConfig
from src.utils.responses import actor_from_request, error_response, json_response

setup_logging()
logger = get_structured_logger(__name__)


def _activity_id_from_request(request: dict) -> int:
    query_params = request.get("query", {}) or {}
    raw = query_params.get("id") or query_params.get("activity_id")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Query parameter 'id' must be an integer")


async def load_activity_detail(activity_id: int, actor: Actor) -> dict:
    aggregate = ActivityAggregate(activity_id, actor)
    await aggregate.load()
    return aggregate.summary()


def handler(request):
    """GET /api/activities/detail?id=<activity_id>"""
    correlation_id = LoggingConfig.correlation_id_from_headers(request.get("headers"))
    with correlation_context(correlation_id):
        try:
            actor = actor_from_request(request)
            activity_id = _activity_id_from_request(request)
            detail = asyncio.run(load_activity_detail(activity_id, actor))
            return json_response(200, {"success": True, "data": detail})
        except Exception as e:
            response = error_response(e)
            if response["statusCode"] >= 500:
                logger.error("Error loading activity detail", exc_info=True, error=str(e))
            else:
                logger.info("Activity detail request rejected", status_code=response["statusCode"], error=str(e))
            return response
