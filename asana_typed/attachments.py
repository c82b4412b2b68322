#!/usr/bin/env python3
"""
Asana Attachment Types

An attachment is any file attached to a task, whether uploaded to Asana or
linked from a third-party service such as Dropbox or Google Drive. Task
attachments are listed and created through the Task accessors.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .infrastructure import with_api_error_handling
from .options import Options
from .types import Resource, WithCreated, WithGID, WithName, WithParent

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class Attachment(Resource, WithParent, WithCreated, WithName, WithGID):
    # Read-only. URL of the attachment content. May be None for files hosted
    # by box; otherwise valid for about an hour, so refresh it on demand.
    download_url: Optional[str] = None
    # Read-only. asana, dropbox, gdrive, box or external
    host: Optional[str] = None
    # Read-only. URL where the attachment can be viewed in a browser.
    view_url: Optional[str] = None
    resource_subtype: Optional[str] = None

    @with_api_error_handling("fetching attachment {self.gid}")
    def fetch(self, client, *options: Options) -> "Attachment":
        """Load the full details for this attachment in place."""
        logger.debug(f"Loading details for attachment {self.name!r}")
        client.get(f"/attachments/{self.gid}", None, self.update_from, *options)
        return self


@dataclass
class ExternalAttachmentRequest(Resource, WithName):
    """Link an externally hosted file to a task."""

    # GID of the task to attach to
    parent: Optional[str] = None
    url: Optional[str] = None
    resource_subtype: str = "external"
