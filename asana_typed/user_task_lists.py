#!/usr/bin/env python3
"""
Asana User Task List Operations

A user task list holds the tasks assigned to one user in one workspace
("My Tasks").
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .infrastructure import with_api_error_handling
from .options import Options
from .types import Resource, WithGID, WithName, api_field, nested, nested_list

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class UserTaskList(Resource, WithName, WithGID):
    # The owner of the user task list.
    owner: Optional[Any] = api_field(decode=nested("User"))
    # The workspace the list belongs to
    workspace: Optional[Any] = api_field(decode=nested("Workspace"))
    # Read-only. Workspaces and organizations this user may access.
    workspaces: Optional[List[Any]] = api_field(decode=nested_list("Workspace"))

    @with_api_error_handling("fetching user task list {self.gid}")
    def fetch(self, client, *options: Options) -> "UserTaskList":
        """Load the full details for this user task list in place."""
        logger.debug(f"Loading details for user task list {self.gid}")
        client.get(f"/user_task_lists/{self.gid}", None, self.update_from, *options)
        return self


@with_api_error_handling("fetching user task list for user {user_gid}")
def user_task_list_for_user(client, user_gid: str, workspace_gid: str, *options: Options) -> UserTaskList:
    """
    Get the task list of a user in a workspace.

    Args:
        client: API client
        user_gid: User GID, or 'me' for the authorized user
        workspace_gid: Workspace the task list belongs to
    """
    logger.debug(f"Loading user task list for user {user_gid} in workspace {workspace_gid}")
    result, _ = client.get(
        f"/users/{user_gid}/user_task_list",
        {"workspace": workspace_gid},
        UserTaskList,
        *options,
    )
    return result
