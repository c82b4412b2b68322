#!/usr/bin/env python3
"""
Asana Custom Field Operations

Custom fields store user-specified metadata on tasks. A custom field is
defined once per workspace, attached to projects through custom field
settings, and carries a value on every task in those projects.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .infrastructure import with_api_error_handling
from .options import Options
from .types import Resource, WithColor, WithCreated, WithGID, WithName, api_field, nested, nested_list

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class EnumValue(Resource, WithColor, WithName, WithGID):
    """One possible value of an enum custom field."""

    enabled: Optional[bool] = None


@dataclass
class CustomField(Resource, WithCreated, WithName, WithGID):
    # The type of the custom field: 'text', 'enum' or 'number'
    type: Optional[str] = None
    # Only relevant for custom fields of type 'enum'.
    enum_options: Optional[List[Any]] = api_field(decode=nested_list("EnumValue"))
    # Only relevant for custom fields of type 'number'. Places after the
    # decimal point to round to.
    precision: Optional[int] = None
    description: Optional[str] = None

    @with_api_error_handling("fetching custom field {self.gid}")
    def fetch(self, client, *options: Options) -> "CustomField":
        """Load the full details for this custom field in place."""
        logger.debug(f"Loading details for custom field {self.gid}")
        client.get(f"/custom_fields/{self.gid}", None, self.update_from, *options)
        return self


@dataclass
class CustomFieldValue(CustomField):
    """
    The value of a custom field on a particular task.

    Only the attribute matching the field's type is populated.
    """

    text_value: Optional[str] = None
    number_value: Optional[float] = None
    enum_value: Optional[Any] = api_field(decode=nested("EnumValue"))
    display_value: Optional[str] = None


@dataclass
class CustomFieldSetting(Resource, WithGID):
    """The attachment of a custom field to a project."""

    # Whether the field is shown first in the project's field list
    is_important: Optional[bool] = None
    project: Optional[Any] = api_field(decode=nested("Project"))
    custom_field: Optional[Any] = api_field(decode=nested("CustomField"))
