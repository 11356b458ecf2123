import json
from typing import Any, Dict, Literal, Mapping

from pydantic import BaseModel, Field

from ..core.exceptions import MalformedMessageError


class RegistrationMessage(BaseModel):
    action: Literal["register"] = "register"
    id: str = Field(..., min_length=1)
    lat: str
    lon: str

    def to_payload(self, propagation: Mapping[str, str]) -> Dict[str, str]:
        payload = self.model_dump()
        clashes = set(payload).intersection(propagation)
        if clashes:
            raise ValueError(f"Propagation keys clash with registration fields: {sorted(clashes)}")
        payload.update(propagation)
        return payload


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


def parse_command(raw: str) -> Dict[str, str]:
    """Decode an inbound frame into a flat string mapping."""
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"not valid JSON ({e})") from e

    if not isinstance(decoded, dict):
        raise MalformedMessageError(f"expected a JSON object, got {type(decoded).__name__}")

    return {str(k): _as_text(v) for k, v in decoded.items()}
