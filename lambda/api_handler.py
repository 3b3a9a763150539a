import json
import os
import logging
from datetime import datetime, timezone

from aws_xray_sdk.core import xray_recorder

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

SUBSEGMENT_NAME = "api-handler"


def tracing_enabled():
    return os.environ.get("TRACING_ENABLED", "false").lower() == "true"


def build_response(event, request_id):
    """Route the proxy event to its JSON document."""
    path = event.get("path") or "/"
    method = event.get("httpMethod") or "GET"

    logger.info(f"Handling {method} {path} (request {request_id})")

    if path.rstrip("/") == "/health":
        body = {"status": "healthy"}
    else:
        body = {
            "message": "Hello from TAP API!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": path,
            "method": method,
            "environment": os.environ.get("APP_ENV", "development"),
            "version": os.environ.get("APP_VERSION", "1.0.0"),
        }

    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": "*",
            "X-Request-ID": request_id,
        },
        "body": json.dumps(body),
    }


def handler(event, context):
    """
    API Gateway proxy handler for GET / and GET /health.

    With tracing on, the work runs inside the "api-handler" subsegment, the
    response is attached to it as metadata and X-Request-ID carries the trace
    id. The subsegment records the error and closes on every exit path.
    Without tracing, X-Request-ID is the Lambda request id.
    """
    try:
        if not tracing_enabled():
            request_id = getattr(context, "aws_request_id", None) or "unknown"
            return build_response(event, request_id)

        with xray_recorder.in_subsegment(SUBSEGMENT_NAME) as subsegment:
            trace_id = xray_recorder.get_trace_entity().trace_id
            response = build_response(event, trace_id)
            subsegment.put_metadata("response", response)
            return response

    except Exception as e:
        logger.error(f"Error handling API request: {str(e)}")
        raise
