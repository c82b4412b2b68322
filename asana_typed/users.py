#!/usr/bin/env python3
"""
Asana User Operations

Users are accounts that can be given access to workspaces, projects and
tasks. The special identifier 'me' refers to the authenticated user anywhere
a user GID is accepted.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .infrastructure import with_api_error_handling
from .options import Options
from .types import Resource, WithGID, WithName, api_field, nested_list

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class User(Resource, WithName, WithGID):
    # Read-only. The user's email address.
    email: Optional[str] = None
    # Read-only. Profile photo URLs keyed by size (image_21x21 ... image_128x128)
    photo: Optional[Dict[str, str]] = None
    # Read-only. Workspaces and organizations this user may access.
    workspaces: Optional[List[Any]] = api_field(decode=nested_list("Workspace"))

    @with_api_error_handling("fetching user {self.gid}")
    def fetch(self, client, *options: Options) -> "User":
        """Load the full details for this user in place."""
        logger.debug(f"Loading details for user {self.gid}")
        client.get(f"/users/{self.gid}", None, self.update_from, *options)
        return self


@with_api_error_handling("fetching the current user")
def current_user(client, *options: Options) -> User:
    """
    Get the currently authorized user.

    Example:
        me = current_user(client)
        print(f"{me.name} <{me.email}>")
    """
    user, _ = client.get("/users/me", None, User, *options)
    return user
