"""Value serializers used by SimpleCache to turn Python objects into payload bytes."""

import abc
import json
import pickle
from typing import Any


class SerializationError(ValueError):
    """A value could not be serialized or deserialized."""


class Serializer(abc.ABC):
    """Converts values to bytes and back."""

    @abc.abstractmethod
    def dumps(self, value: Any) -> bytes:
        pass

    @abc.abstractmethod
    def loads(self, data: bytes) -> Any:
        pass


class PickleSerializer(Serializer):
    """Stores any picklable value. Only use with a cache root you trust."""

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def dumps(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Value of type {type(value).__name__} is not picklable: {e}") from e

    def loads(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, ValueError, TypeError,
                AttributeError, ImportError, IndexError) as e:
            raise SerializationError(f"Failed to unpickle cached value: {e}") from e


class JsonSerializer(Serializer):
    """Stores JSON-compatible values as UTF-8 text."""

    def dumps(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value of type {type(value).__name__} is not JSON serializable: {e}") from e

    def loads(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError(f"Failed to decode cached JSON value: {e}") from e
