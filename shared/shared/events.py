"""
Domain event envelope shared by every service.

Consumers key on event_type (also the routing key) and dedupe on event_id.
"""

import json
import uuid
from datetime import datetime, timezone

ENVELOPE_VERSION = 1


def build_event(event_type: str, data: dict, source: str | None = None) -> dict:
    event = {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "version": ENVELOPE_VERSION,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }
    if source:
        event["source"] = source
    return event


def to_json(event: dict) -> str:
    # dates and enums in payloads go out as their string form
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)
