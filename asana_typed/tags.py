#!/usr/bin/env python3
"""
Asana Tag Operations

A tag is a label that can be attached to any task. It exists in a single
workspace or organization. Unlike projects, tags do not order the tasks they
are attached to.
"""

import logging
from dataclasses import dataclass

from .infrastructure import with_api_error_handling
from .options import Options
from .types import (
    Resource,
    WithColor,
    WithCreated,
    WithFollowers,
    WithGID,
    WithName,
    WithNotes,
    WithWorkspace,
)

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class TagBase(Resource, WithColor, WithNotes, WithName):
    """The modifiable fields of a tag."""


@dataclass
class Tag(TagBase, WithFollowers, WithWorkspace, WithCreated, WithGID):

    @with_api_error_handling("fetching tag {self.gid}")
    def fetch(self, client, *options: Options) -> "Tag":
        """Load the full details for this tag in place."""
        logger.debug(f"Loading details for tag {self.name!r}")
        client.get(f"/tags/{self.gid}", None, self.update_from, *options)
        return self
