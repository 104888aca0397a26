"""JSON serializer implementation."""

import dataclasses
import json
from datetime import date, datetime
from typing import Any

from cacheaside.exceptions import SerializationError

__all__ = ["JsonSerializer", "SerializationError"]

_TAGS = frozenset({"__datetime__", "__date__", "__dict__"})


class JsonSerializer:
    """JSON serializer for cache values.

    Handles serialization of Python objects to JSON bytes and
    deserialization back to Python objects. ``datetime`` and ``date``
    values are written as tagged objects and restored on read, so they
    survive a round trip. Caller dicts whose only key is one of these
    tags are escaped as ``{"__dict__": [[key, value]]}`` so they are never
    mistaken for one. Dataclasses and other objects with a
    ``__dict__`` are written as plain objects; rebuilding them is up to
    the caller's decoder.
    """

    def __init__(self, encoding: str = "utf-8", sort_keys: bool = False) -> None:
        """Initialize the JSON serializer.

        Args:
            encoding: Character encoding to use.
            sort_keys: Emit object keys in sorted order.
        """
        self._encoding = encoding
        self._sort_keys = sort_keys

    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: The Python object to serialize.

        Returns:
            The serialized value as bytes.

        Raises:
            SerializationError: If the value cannot be serialized.
        """
        try:
            json_str = json.dumps(
                self._escape(value),
                default=self._default_encoder,
                sort_keys=self._sort_keys,
                allow_nan=False,
            )
            return json_str.encode(self._encoding)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize value: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: The bytes to deserialize.

        Returns:
            The deserialized Python object.

        Raises:
            SerializationError: If the data cannot be deserialized.
        """
        try:
            json_str = data.decode(self._encoding)
            return json.loads(json_str, object_hook=self._object_hook)
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            raise SerializationError(f"Failed to deserialize data: {e}") from e

    def _default_encoder(self, obj: Any) -> Any:
        """Custom encoder for non-JSON-serializable types.

        Raises:
            TypeError: If the object cannot be encoded.
        """
        if isinstance(obj, datetime):
            return {"__datetime__": obj.isoformat()}
        if isinstance(obj, date):
            return {"__date__": obj.isoformat()}
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return self._escape(dataclasses.asdict(obj))
        if isinstance(obj, (set, frozenset, tuple)):
            return self._escape(list(obj))
        if hasattr(obj, "__dict__"):
            return self._escape(obj.__dict__)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    def _escape(self, value: Any) -> Any:
        if isinstance(value, dict):
            escaped = {key: self._escape(item) for key, item in value.items()}
            if len(escaped) == 1 and next(iter(escaped)) in _TAGS:
                return {"__dict__": [list(pair) for pair in escaped.items()]}
            return escaped
        if isinstance(value, (list, tuple)):
            return [self._escape(item) for item in value]
        return value

    @staticmethod
    def _object_hook(obj: dict[str, Any]) -> Any:
        if len(obj) == 1:
            if isinstance(obj.get("__dict__"), list):
                return dict(obj["__dict__"])
            if "__datetime__" in obj:
                return datetime.fromisoformat(obj["__datetime__"])
            if "__date__" in obj:
                return date.fromisoformat(obj["__date__"])
        return obj
