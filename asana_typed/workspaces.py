#!/usr/bin/env python3
"""
Asana Workspace Operations

A workspace is the highest-level organizational unit in Asana; all projects
and tasks belong to one. An organization is a special kind of workspace that
represents a company and groups its projects into teams.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .client import NextPage, fetch_all
from .custom_fields import CustomField
from .errors import AsanaClientError
from .infrastructure import with_api_error_handling
from .options import Options
from .portfolios import Portfolio
from .projects import Project
from .tags import Tag, TagBase
from .teams import Team
from .types import Resource, WithGID, WithName, list_of
from .users import current_user

# Configure logging
logger = logging.getLogger(__name__)

TAGS_PAGE_SIZE = 50
PROJECTS_PAGE_SIZE = 100


@dataclass
class Workspace(Resource, WithName, WithGID):
    # Whether the workspace is an organization.
    is_organization: Optional[bool] = None
    # Undocumented in API docs
    email_domains: Optional[List[str]] = None

    @with_api_error_handling("fetching workspace {self.gid}")
    def fetch(self, client, *options: Options) -> "Workspace":
        """Load the full details for this workspace in place."""
        logger.debug(f"Loading workspace details for {self.name!r}")
        client.get(f"/workspaces/{self.gid}", None, self.update_from, *options)
        return self

    # ========== Projects ==========

    @with_api_error_handling("listing projects in workspace {self.gid}")
    def projects(self, client, *options: Options) -> Tuple[List[Project], Optional[NextPage]]:
        """Return one page of projects in this workspace."""
        logger.debug(f"Listing projects in {self.name!r}")
        return client.get(f"/workspaces/{self.gid}/projects", None, list_of(Project), *options)

    def all_projects(self, client, *options: Options) -> List[Project]:
        """Page through every project in this workspace."""
        return fetch_all(lambda *opts: self.projects(client, *opts), PROJECTS_PAGE_SIZE, *options)

    @with_api_error_handling("listing favorite projects in workspace {self.gid}")
    def favorite_projects(self, client, *options: Options) -> Tuple[List[Project], Optional[NextPage]]:
        """Return one page of the current user's favorite projects in this workspace."""
        logger.debug(f"Listing favorite projects in {self.name!r}")
        user = current_user(client)
        query = {"resource_type": "project", "workspace": self.gid}
        return client.get(f"/users/{user.gid}/favorites", query, list_of(Project), *options)

    def all_favorite_projects(self, client, *options: Options) -> List[Project]:
        """Page through every favorite project in this workspace."""
        return fetch_all(lambda *opts: self.favorite_projects(client, *opts), PROJECTS_PAGE_SIZE, *options)

    # ========== Tags ==========

    @with_api_error_handling("listing tags in workspace {self.gid}")
    def tags(self, client, *options: Options) -> Tuple[List[Tag], Optional[NextPage]]:
        """Return one page of tags in this workspace."""
        logger.debug(f"Listing tags in {self.name!r}")
        return client.get(f"/workspaces/{self.gid}/tags", None, list_of(Tag), *options)

    def all_tags(self, client, *options: Options) -> List[Tag]:
        """
        Page through every tag in this workspace.

        When a cache is configured, repeated lookups of a single-page listing
        are served from it. Pages that carry a cursor are always fetched.
        """
        return fetch_all(lambda *opts: self.tags(client, *opts), TAGS_PAGE_SIZE, *options)

    @with_api_error_handling("creating tag in workspace {self.gid}")
    def create_tag(self, client, tag: TagBase, *options: Options) -> Tag:
        """
        Add a new tag to this workspace.

        Cached tag listings for the workspace are dropped so that the next
        all_tags() call sees the new tag.
        """
        logger.info(f"Creating tag {tag.name!r} in {self.name!r}")
        result = client.post(f"/workspaces/{self.gid}/tags", tag, Tag, *options)
        clear_tag_listings(client, self)
        return result

    # ========== Teams, portfolios, custom fields ==========

    @with_api_error_handling("listing teams in organization {self.gid}")
    def teams(self, client, *options: Options) -> Tuple[List[Team], Optional[NextPage]]:
        """Return one page of teams in this organization visible to the user."""
        logger.debug(f"Listing teams in workspace {self.gid}")
        return client.get(f"/organizations/{self.gid}/teams", None, list_of(Team), *options)

    @with_api_error_handling("listing portfolios in workspace {self.gid}")
    def portfolios(self, client, *options: Options) -> Tuple[List[Portfolio], Optional[NextPage]]:
        """Return one page of portfolios owned by the current user in this workspace."""
        logger.debug(f"Listing portfolios in {self.name!r}")
        query = {"workspace": self.gid, "owner": "me"}
        return client.get("/portfolios", query, list_of(Portfolio), *options)

    @with_api_error_handling("listing custom fields in workspace {self.gid}")
    def custom_fields(self, client, *options: Options) -> Tuple[List[CustomField], Optional[NextPage]]:
        """Return one page of custom fields defined in this workspace."""
        logger.debug(f"Listing custom fields in {self.name!r}")
        return client.get(f"/workspaces/{self.gid}/custom_fields", None, list_of(CustomField), *options)


def clear_tag_listings(client, workspace: Workspace) -> None:
    """Drop every cached page of the workspace's tag listing."""
    client.clear_cache(f"/workspaces/{workspace.gid}/tags", all_queries=True)


@with_api_error_handling("listing workspaces")
def list_workspaces(client, *options: Options) -> List[Workspace]:
    """
    Get the workspaces and organizations accessible to the authorized user.

    All workspace fields are requested unless options select others.

    Example:
        for ws in list_workspaces(client):
            print(f"{ws.name}: {ws.gid}")
    """
    logger.debug("Listing workspaces")
    opts = (Options.fields_for(Workspace),) + options
    workspaces, _ = client.get("/workspaces", None, list_of(Workspace), *opts)
    logger.info(f"Retrieved {len(workspaces)} workspaces")
    return workspaces


def get_workspace_by_name(client, workspace_name: Optional[str] = None) -> Workspace:
    """
    Find a workspace by name, or return the first one if no name is given.

    Raises:
        AsanaClientError: If no workspaces are found or the name does not match
    """
    workspaces = list_workspaces(client)

    if not workspaces:
        raise AsanaClientError(
            "No workspaces found. Verify your Asana account has access to at least one workspace."
        )

    if workspace_name is None:
        ws = workspaces[0]
        logger.info(f"Using first workspace: {ws.name} (GID: {ws.gid})")
        return ws

    workspace_name_lower = workspace_name.lower()
    for ws in workspaces:
        if (ws.name or "").lower() == workspace_name_lower:
            logger.info(f"Found workspace: {ws.name} (GID: {ws.gid})")
            return ws

    available = ", ".join(f"'{ws.name}'" for ws in workspaces)
    raise AsanaClientError(
        f"Workspace '{workspace_name}' not found. Available workspaces: {available}"
    )
