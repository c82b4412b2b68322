#!/usr/bin/env python3
"""
Asana Request Options

In addition to the fields of a request, the API accepts options that control
how the request is interpreted and how the response is generated. For GET
requests they are sent as opt_ prefixed URL parameters; for POST and PUT they
travel in the body as the "options" sibling of "data". Feature toggles are
sent as Asana-Enable / Asana-Disable headers.

Options are a sparse overlay: None means "unset" and never overrides a value
set elsewhere.
"""

import dataclasses
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .errors import AsanaEncodingError

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class Feature(str, Enum):
    """API features toggled through the Asana-Enable / Asana-Disable headers."""

    NEW_TASK_SUBTYPES = "new_task_subtypes"
    NEW_SECTIONS = "new_sections"
    STRING_IDS = "string_ids"

    def __str__(self) -> str:
        return self.value


FeatureLike = Union[Feature, str]


@dataclass
class Options:
    """Per-request options. Every field defaults to unset."""

    # Exact set of fields the API should return; takes precedence over expand
    fields: Optional[List[str]] = None
    # Sub-objects to return in expanded form
    expand: Optional[List[str]] = None
    # Line-broken, indented output. Debugging only.
    pretty: Optional[bool] = None
    # Wrap the response in a JSON-P callback of this name
    jsonp: Optional[str] = None
    # Page size
    limit: Optional[int] = None
    # Opaque cursor returned by the server in next_page
    offset: Optional[str] = None
    # HTTP method override for environments restricted to POST
    method: Optional[str] = None
    # Sends Asana-Fast-Api: true
    fast_api: Optional[bool] = None
    enable: Optional[List[FeatureLike]] = None
    disable: Optional[List[FeatureLike]] = None

    @classmethod
    def fields_for(cls, entity_type: type) -> "Options":
        """Options selecting every JSON field declared by an entity type."""
        return cls(fields=list(entity_type.json_fields()))

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in dataclasses.fields(self))


# Fields whose values are unioned rather than replaced during merge
_UNION_FIELDS = ("enable", "disable")


def _union(*groups: Optional[Iterable[Any]]) -> Optional[List[Any]]:
    merged: Dict[str, Any] = {}
    any_set = False
    for group in groups:
        if group is None:
            continue
        any_set = True
        for item in group:
            merged.setdefault(str(item), item)
    if not any_set:
        return None
    return list(merged.values())


def _check_string(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise AsanaEncodingError(f"Option {name} must be a string, got {type(value).__name__}")
    if _CONTROL_CHARS.search(value):
        raise AsanaEncodingError(f"Option {name} contains control characters: {value!r}")
    return value


def _check(options: Options) -> None:
    if not isinstance(options, Options):
        raise AsanaEncodingError(f"Expected Options, got {type(options).__name__}")
    for name in ("fields", "expand", "enable", "disable"):
        values = getattr(options, name)
        if values is None:
            continue
        if isinstance(values, (str, bytes)):
            raise AsanaEncodingError(f"Option {name} must be a list of strings, not a string")
        for value in values:
            _check_string(name, str(value) if isinstance(value, Feature) else value)
    for name in ("jsonp", "offset", "method"):
        value = getattr(options, name)
        if value is not None:
            _check_string(name, value)
    if options.limit is not None and (
        isinstance(options.limit, bool) or not isinstance(options.limit, int)
    ):
        raise AsanaEncodingError(f"Option limit must be an int, got {options.limit!r}")


def merge_options(call_options: Sequence[Optional[Options]], defaults: Optional[Options] = None) -> Options:
    """
    Combine client defaults and per-call options into one effective Options.

    Later entries in call_options take precedence over earlier ones, and all
    of them over defaults. Scalars and field selections are last-write-wins
    among set values; feature toggles are unioned.

    Raises:
        AsanaEncodingError: If an Options value cannot be serialized
    """
    layers = [defaults] + list(call_options)
    layers = [layer for layer in layers if layer is not None]
    for layer in layers:
        _check(layer)

    merged = Options()
    for f in dataclasses.fields(Options):
        if f.name in _UNION_FIELDS:
            setattr(merged, f.name, _union(*(getattr(layer, f.name) for layer in layers)))
            continue
        for layer in layers:
            value = getattr(layer, f.name)
            if value is not None:
                setattr(merged, f.name, list(value) if isinstance(value, list) else value)
    return merged


# ============================================================================
# Encoding
# ============================================================================

def _query_value(name: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _check_string(name, str(value.value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return _check_string(name, value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_query_value(name, item) for item in value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    raise AsanaEncodingError(f"Cannot encode {name}={value!r} as a query parameter")


def encode_options_query(options: Optional[Options]) -> Dict[str, str]:
    """URL parameters for the query-visible options."""
    if options is None:
        return {}
    _check(options)
    params: Dict[str, str] = {}
    if options.fields:
        params["opt_fields"] = ",".join(options.fields)
    if options.expand:
        params["opt_expand"] = ",".join(options.expand)
    if options.pretty:
        params["opt_pretty"] = "true"
    if options.jsonp:
        params["opt_jsonp"] = options.jsonp
    if options.limit is not None:
        params["limit"] = str(options.limit)
    if options.offset:
        params["offset"] = options.offset
    return params


def encode_query_data(data: Any) -> Dict[str, str]:
    """
    URL parameters for a query struct.

    Accepts a dict, a dataclass instance or any object with to_query().
    None values are dropped.
    """
    if data is None:
        return {}
    if hasattr(data, "to_query"):
        items = data.to_query()
    elif dataclasses.is_dataclass(data) and not isinstance(data, type):
        items = {f.name: getattr(data, f.name) for f in dataclasses.fields(data)}
    elif isinstance(data, dict):
        items = data
    else:
        raise AsanaEncodingError(f"Cannot encode {type(data).__name__} as query parameters")

    params: Dict[str, str] = {}
    for name, value in items.items():
        if value is None:
            continue
        params[_check_string("parameter name", name)] = _query_value(name, value)
    return params


def encode_options_body(options: Optional[Options]) -> Optional[Dict[str, Any]]:
    """The "options" object sent beside "data" in mutating requests."""
    if options is None:
        return None
    _check(options)
    body: Dict[str, Any] = {}
    if options.pretty:
        body["pretty"] = True
    if options.method:
        body["method"] = options.method
    if options.fields:
        body["fields"] = list(options.fields)
    if options.expand:
        body["expand"] = list(options.expand)
    if options.jsonp:
        body["jsonp"] = options.jsonp
    return body or None


def feature_headers(options: Optional[Options]) -> Dict[str, str]:
    """Request headers derived from feature toggles."""
    headers: Dict[str, str] = {}
    if options is None:
        return headers
    if options.fast_api:
        headers["Asana-Fast-Api"] = "true"
    if options.enable:
        headers["Asana-Enable"] = ",".join(str(f) for f in options.enable)
    if options.disable:
        headers["Asana-Disable"] = ",".join(str(f) for f in options.disable)
    return headers
