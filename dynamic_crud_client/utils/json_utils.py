import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, (datetime, date)):
            return obj.isoformat()
        # Handle Pydantic models and other objects with model_dump method
        elif hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return super().default(obj)


def dumps(obj: Any, **kwargs) -> str:
    """JSON dumps with Decimal, datetime and Pydantic support."""
    return json.dumps(obj, cls=EnhancedJSONEncoder, **kwargs)


def canonical_dumps(obj: Any) -> str:
    """Deterministic JSON text: sorted keys, no insignificant whitespace."""
    return dumps(obj, sort_keys=True, separators=(",", ":"))


def loads(s: Union[str, bytes, bytearray], **kwargs) -> Any:
    """Standard JSON loads function."""
    return json.loads(s, **kwargs)
