#!/usr/bin/env python3
"""
Asana Section Operations

A section is a subdivision of a project that groups tasks together. It is a
header above a list of tasks in list view or a column in board view.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .client import NextPage
from .infrastructure import with_api_error_handling
from .options import Options
from .tasks import Task
from .types import Resource, WithCreated, WithGID, WithName, api_field, list_of, nested

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class SectionBase(Resource, WithName):
    """The modifiable fields of a section."""


@dataclass
class Section(SectionBase, WithCreated, WithGID):
    # Read-only. The project which contains the section.
    project: Optional[Any] = api_field(decode=nested("Project"))

    @with_api_error_handling("fetching section {self.gid}")
    def fetch(self, client, *options: Options) -> "Section":
        """Load the full details for this section in place."""
        logger.debug(f"Loading section details for {self.name!r}")
        client.get(f"/sections/{self.gid}", None, self.update_from, *options)
        return self

    @with_api_error_handling("listing tasks in section {self.gid}")
    def tasks(self, client, *options: Options) -> Tuple[List[Task], Optional[NextPage]]:
        """Return one page of tasks in this section."""
        logger.debug(f"Listing tasks in section {self.name!r}")
        return client.get(f"/sections/{self.gid}/tasks", None, list_of(Task), *options)


@dataclass
class SectionInsertRequest(Resource):
    """
    Move a section relative to another one in a board view.

    One of before_section or after_section is required. Sections cannot be
    moved between projects.
    """

    section: Optional[str] = None
    before_section: Optional[str] = None
    after_section: Optional[str] = None
