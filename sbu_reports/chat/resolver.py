"""
Pulls a display string out of whatever JSON the chat backend returns.

Extractors are tried in order; the first one producing a string with
non-whitespace content wins. New payload shapes go into EXTRACTORS.
"""
import json
from typing import Any, Callable, List, Optional


Extractor = Callable[[dict], Any]


def _key(name: str) -> Extractor:
    return lambda payload: payload.get(name)


def _joined_outputs(payload: dict) -> Optional[str]:
    outputs = payload.get("outputs")
    if isinstance(outputs, list):
        return "\n".join(str(item) for item in outputs)
    return None


def _joined_source_parts(payload: dict) -> Optional[str]:
    parts = payload.get("sourceParts")
    if isinstance(parts, list) and parts:
        return "\n".join(p for p in parts if isinstance(p, str) and p.strip())
    return None


def _first_choice_content(payload: dict) -> Optional[str]:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    return message.get("content") if isinstance(message, dict) else None


EXTRACTORS: List[Extractor] = [
    _key("answer"),
    _key("response"),
    _key("output"),
    _joined_outputs,
    _joined_source_parts,
    _key("rendered"),
    _key("text"),
    _key("data"),
    _first_choice_content,
]


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def resolve_text(payload: Any) -> str:
    """Best-effort reply text for a chat payload. Never raises."""
    if payload is None or payload == "":
        return ""
    if isinstance(payload, str):
        return payload

    if isinstance(payload, dict):
        for extract in EXTRACTORS:
            candidate = extract(payload)
            if _has_text(candidate):
                return candidate

    return json.dumps(payload, indent=2, default=str)
