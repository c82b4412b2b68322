#!/usr/bin/env python3
"""
Asana Resource Types

Base class and shared field groups for API resources. Each resource is a
dataclass; its declared fields are the table of JSON fields it understands,
used both for decoding responses and for requesting the full field set.

Field groups (WithName, WithCreated, ...) are composed by inheritance so that
the same attribute has the same JSON name on every resource.
"""

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

T = TypeVar("T", bound="Resource")

_REGISTRY: Dict[str, Type["Resource"]] = {}


# ============================================================================
# Value codecs
# ============================================================================

def parse_date(value: Any) -> date:
    """Parse an API date ('2012-03-26')."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def parse_datetime(value: Any) -> datetime:
    """Parse an API timestamp ('2012-02-22T02:06:58.147Z')."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def encode_value(value: Any) -> Any:
    """Convert a Python value into its JSON representation."""
    if isinstance(value, Resource):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    return value


def _resolve(type_name: str) -> Type["Resource"]:
    try:
        return _REGISTRY[type_name]
    except KeyError:
        raise TypeError(f"Unknown resource type {type_name}") from None


def nested(type_name: str) -> Callable[[Any], "Resource"]:
    """Decoder for a single nested resource, resolved by class name."""
    return lambda value: _resolve(type_name).from_dict(value)


def nested_list(type_name: str) -> Callable[[Any], List["Resource"]]:
    """Decoder for a list of nested resources, resolved by class name."""
    def decode(value: Any) -> List["Resource"]:
        if not isinstance(value, list):
            raise TypeError(f"Expected a list of {type_name}, got {type(value).__name__}")
        resource_type = _resolve(type_name)
        return [resource_type.from_dict(item) for item in value]
    return decode


def api_field(decode: Optional[Callable[[Any], Any]] = None, json: Optional[str] = None, default_factory=None):
    """Optional dataclass field with an optional decoder and JSON name."""
    metadata = {}
    if decode is not None:
        metadata["decode"] = decode
    if json is not None:
        metadata["json"] = json
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=None, metadata=metadata)


def date_field():
    return api_field(decode=parse_date)


def datetime_field():
    return api_field(decode=parse_datetime)


# ============================================================================
# Resource base
# ============================================================================

class Resource:
    """Base for all API resources and request payloads."""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        _REGISTRY[cls.__name__] = cls

    @classmethod
    def json_fields(cls) -> Tuple[str, ...]:
        """JSON names of every field this type declares."""
        return tuple(f.metadata.get("json", f.name) for f in dataclasses.fields(cls))

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Build an instance from decoded JSON, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise TypeError(f"Expected an object for {cls.__name__}, got {type(data).__name__}")
        kwargs = {}
        for f in dataclasses.fields(cls):
            key = f.metadata.get("json", f.name)
            if key not in data:
                continue
            value = data[key]
            decode = f.metadata.get("decode")
            kwargs[f.name] = decode(value) if decode is not None and value is not None else value
        return cls(**kwargs)

    def update_from(self: T, data: Dict[str, Any]) -> T:
        """Overwrite the fields present in data, keeping the others."""
        decoded = type(self).from_dict(data)
        for f in dataclasses.fields(self):
            if f.metadata.get("json", f.name) in data:
                setattr(self, f.name, getattr(decoded, f.name))
        return self

    def to_dict(self) -> Dict[str, Any]:
        """JSON representation, omitting unset fields."""
        result = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            result[f.metadata.get("json", f.name)] = encode_value(value)
        return result


def list_of(resource_type: Type[T]) -> Callable[[Any], List[T]]:
    """Result decoder for responses whose data is an array of resource_type."""
    def decode(value: Any) -> List[T]:
        if not isinstance(value, list):
            raise TypeError(f"Expected a list of {resource_type.__name__}, got {type(value).__name__}")
        return [resource_type.from_dict(item) for item in value]
    decode.__name__ = f"list_of_{resource_type.__name__}"
    return decode


# ============================================================================
# Shared field groups
# ============================================================================

@dataclass
class WithGID:
    # Read-only. Globally unique ID of the object
    gid: Optional[str] = None
    resource_type: Optional[str] = None


@dataclass
class WithName:
    # The name of the object.
    name: Optional[str] = None


@dataclass
class WithNotes:
    # More detailed, free-form textual information associated with the object.
    notes: Optional[str] = None
    html_notes: Optional[str] = None


@dataclass
class WithColor:
    # Color of the object, e.g. dark-pink, light-teal; None for no color.
    color: Optional[str] = None


@dataclass
class WithCreated:
    # Read-only. The time at which this object was created.
    created_at: Optional[datetime] = datetime_field()


@dataclass
class WithDates(WithCreated):
    # Read-only. The time at which this object was last modified.
    modified_at: Optional[datetime] = datetime_field()


@dataclass
class WithFollowers:
    # Read-only. Users following this object.
    followers: Optional[List[Any]] = api_field(decode=nested_list("User"))


@dataclass
class WithWorkspace:
    # Create-only. The workspace or organization this object belongs to.
    workspace: Optional[Any] = api_field(decode=nested("Workspace"))


@dataclass
class WithParent:
    # Read-only. The task this object is attached to.
    parent: Optional[Any] = api_field(decode=nested("Task"))
