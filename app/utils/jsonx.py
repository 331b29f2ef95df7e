import json
from typing import Any


def to_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True, default=str)


def from_json(value: str, fallback: Any):
    try:
        return json.loads(value) if value else fallback
    except json.JSONDecodeError:
        return fallback


def from_json_object(value: str) -> dict[str, Any]:
    data = from_json(value, {})
    return data if isinstance(data, dict) else {}


class MalformedBodyError(ValueError):
    pass


async def read_json_body(request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        # JSONDecodeError and UnicodeDecodeError both land here.
        raise MalformedBodyError("Request body is not valid JSON.") from exc
