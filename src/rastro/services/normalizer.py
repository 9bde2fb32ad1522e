import json
import logging
from typing import Any

from pydantic import ValidationError

from rastro.errors import InvalidPayload
from rastro.models.tracking import WebhookEnvelope, envelope_list

logger = logging.getLogger(__name__)


def normalize_payload(raw: Any) -> list[WebhookEnvelope]:
    """Coerce a webhook body into validated envelopes.

    Accepts the JSON text itself, a list of envelopes or a single envelope.
    Envelope bodies delivered as JSON strings are decoded in place; one that
    fails to decode becomes an empty batch instead of failing the request.
    Any schema violation after that rejects the whole payload.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidPayload(f"Payload is not valid UTF-8: {e}") from e

    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError as e:
            raise InvalidPayload(f"Payload is not valid JSON: {e}") from e
        return normalize_payload(decoded)

    if isinstance(raw, dict) and "body" in raw:
        return normalize_payload([raw])

    if not isinstance(raw, list):
        raise InvalidPayload(f"Unsupported payload type: {type(raw).__name__}")

    envelopes = [_decode_body(element, index) for index, element in enumerate(raw)]
    try:
        return envelope_list.validate_python(envelopes)
    except ValidationError as e:
        raise InvalidPayload(f"Payload failed validation: {e.error_count()} error(s); {_summarize(e)}") from e


def _decode_body(element: Any, index: int) -> Any:
    if not isinstance(element, dict) or not isinstance(element.get("body"), str):
        return element

    try:
        body = json.loads(element["body"])
    except ValueError:
        logger.warning(f"Envelope {index} has an undecodable body, treating it as empty")
        body = {"trackings": []}
    return {**element, "body": body}


def _summarize(error: ValidationError, limit: int = 3) -> str:
    parts = []
    for detail in error.errors()[:limit]:
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)
