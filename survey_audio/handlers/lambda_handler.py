"""
AWS Lambda entry point for the survey audio pipeline.

Accepts API Gateway proxy events (JSON body, optionally base64 encoded)
and direct invocations whose event is the request payload itself. Requests
whose path ends in /send-audio-message go to the messaging use case,
everything else runs audio generation.
"""
import asyncio
import base64
import binascii
import json
from typing import Dict, Any

from pydantic import ValidationError

from survey_audio.api.dependencies import DependencyContainer, get_dependency_container
from survey_audio.core.exceptions import PipelineError
from survey_audio.infrastructure.logging.log_config import get_logger
from survey_audio.schemas.generate_audio import GenerateAudioRequest, SendAudioMessageRequest


logger = get_logger("lambda_handler")

SEND_MESSAGE_PATH = "/send-audio-message"


class InvalidEvent(ValueError):
    pass


def _response(status_code: int, body: Dict[str, Any], request_id: str = None) -> Dict[str, Any]:
    headers = {"Content-Type": "application/json"}
    if request_id:
        headers["X-Request-ID"] = request_id
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(body, default=str)
    }


def parse_event_payload(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the request payload from an API Gateway or direct event.

    Raises:
        InvalidEvent: Body is not a JSON object
    """
    if "body" not in event:
        return {k: v for k, v in event.items() if k not in ("path", "rawPath")}

    body = event.get("body")
    if body is None:
        return {}
    if isinstance(body, dict):
        return body

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise InvalidEvent(f"Body is not valid base64: {e}")

    try:
        payload = json.loads(body) if body else {}
    except json.JSONDecodeError as e:
        raise InvalidEvent(f"Body is not valid JSON: {e.msg}")
    if not isinstance(payload, dict):
        raise InvalidEvent("Body must be a JSON object")
    return payload


def _event_path(event: Dict[str, Any]) -> str:
    return event.get("rawPath") or event.get("path") or ""


async def _generate_audio(container: DependencyContainer, payload: Dict[str, Any]) -> Dict[str, Any]:
    request = GenerateAudioRequest.model_validate(payload)
    result = await container.generate_audio_use_case.execute(request.to_command())
    return {"status_code": result.http_status, "body": result.to_response()}


async def _send_audio_message(container: DependencyContainer, payload: Dict[str, Any]) -> Dict[str, Any]:
    request = SendAudioMessageRequest.model_validate(payload)
    try:
        delivery = await container.send_audio_message_use_case.execute(request.contact_id, request.email)
    except PipelineError as e:
        body = {**e.to_dict(), "success": False, "attempts": e.details.get("attempts", [])}
        return {"status_code": e.http_status, "body": body}
    return {
        "status_code": 200,
        "body": {
            "success": True,
            "message_id": delivery.message_id,
            "method": delivery.method,
            "attachment_url": delivery.attachment_url,
            "attempts": delivery.attempts
        }
    }


async def handle_event(event: Dict[str, Any], container: DependencyContainer) -> Dict[str, Any]:
    payload = parse_event_payload(event)
    if _event_path(event).rstrip("/").endswith(SEND_MESSAGE_PATH):
        outcome = await _send_audio_message(container, payload)
    else:
        outcome = await _generate_audio(container, payload)

    # Let queued notifications go out before the runtime freezes
    await container.notifier.drain(container.settings.notification_drain_seconds)
    return outcome


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda handler.

    Args:
        event: API Gateway proxy event or direct request payload
        context: AWS Lambda context

    Returns:
        API Gateway proxy response with a JSON body
    """
    request_id = getattr(context, "aws_request_id", None)
    logger.info("Survey audio Lambda invoked", extra={"extra_fields": {
        "request_id": request_id,
        "path": _event_path(event),
        "remaining_time_ms": context.get_remaining_time_in_millis() if context else None
    }})

    container = get_dependency_container()
    try:
        outcome = asyncio.run(handle_event(event, container))
    except InvalidEvent as e:
        logger.warning("Rejected malformed event", extra={"extra_fields": {"error": str(e)}})
        return _response(400, {"success": False, "error": str(e), "error_code": "INVALID_REQUEST"}, request_id)
    except ValidationError as e:
        logger.warning("Rejected invalid payload", extra={"extra_fields": {"errors": e.errors(include_url=False)}})
        return _response(400, {
            "success": False,
            "error": "Invalid request payload",
            "error_code": "INVALID_REQUEST",
            "details": e.errors(include_url=False)
        }, request_id)
    except Exception as e:
        logger.exception("Critical error in survey audio Lambda", extra={"extra_fields": {
            "error_type": type(e).__name__,
            "request_id": request_id
        }})
        return _response(500, {"success": False, "error": "Internal server error", "error_code": "UNEXPECTED_ERROR"}, request_id)

    return _response(outcome["status_code"], outcome["body"], request_id)


def health_check_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Health check for the Lambda deployment.
    """
    health_service = get_dependency_container().health_check_service
    results = health_service.check_all_services()
    unhealthy = health_service.unhealthy_services(results)
    return _response(
        503 if unhealthy else 200,
        {"status": "unhealthy" if unhealthy else "healthy", "services": results},
        getattr(context, "aws_request_id", None)
    )
