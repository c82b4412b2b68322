#!/usr/bin/env python3
"""
Asana Project Operations

A project is a prioritized list of tasks. It exists in a single workspace or
organization and is accessible to a subset of the users there. Projects in
organizations are shared with a single team; regular workspaces have no
teams.

Followers of a project are a subset of its members and receive all updates
including tasks created, added and removed from the project.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .client import NextPage, fetch_all
from .custom_fields import CustomFieldSetting
from .infrastructure import with_api_error_handling
from .options import Options
from .sections import Section, SectionBase, SectionInsertRequest
from .tasks import Task
from .types import (
    Resource,
    WithColor,
    WithDates,
    WithFollowers,
    WithGID,
    WithName,
    WithNotes,
    WithWorkspace,
    api_field,
    date_field,
    list_of,
    nested,
    nested_list,
)

# Configure logging
logger = logging.getLogger(__name__)

TASKS_PAGE_SIZE = 100


class View(str, Enum):
    """Project layouts."""

    LIST = "list"
    BOARD = "board"
    CALENDAR = "calendar"
    TIMELINE = "timeline"


@dataclass
class ProjectStatus(Resource, WithColor):
    """
    A description of the project's status.

    color is one of green, yellow or red (or None).
    """

    text: Optional[str] = None
    author: Optional[Any] = api_field(decode=nested("User"))


@dataclass
class ProjectBase(Resource, WithColor, WithNotes, WithName):
    """The modifiable fields of a project."""

    # Archived projects do not show in the UI by default and may be treated
    # differently for queries.
    archived: Optional[bool] = None
    current_status: Optional[ProjectStatus] = api_field(decode=nested("ProjectStatus"))
    # The layout (board or list view) of the project.
    default_view: Optional[str] = None
    due_on: Optional[date] = date_field()
    icon: Optional[str] = None
    # Opt In. Determines if the project is a template.
    is_template: Optional[bool] = None
    # True if the project is public to the organization.
    public: Optional[bool] = None
    start_on: Optional[date] = date_field()


@dataclass
class CreateProjectRequest(ProjectBase):
    workspace: Optional[str] = None
    team: Optional[str] = None
    owner: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None


@dataclass
class UpdateProjectRequest(ProjectBase):
    owner: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None


@dataclass
class Project(ProjectBase, WithFollowers, WithWorkspace, WithDates, WithGID):
    # Read-only. Custom field settings in compact form.
    custom_field_settings: Optional[List[Any]] = api_field(decode=nested_list("CustomFieldSetting"))
    # Read-only. Users who are members of this project.
    members: Optional[List[Any]] = api_field(decode=nested_list("User"))
    # Custom field values set on the project for fields applied to a parent
    # portfolio. The gid of each value is the gid of the custom field.
    custom_fields: Optional[List[Any]] = api_field(decode=nested_list("CustomFieldValue"))
    # The current owner of the project, may be None.
    owner: Optional[Any] = api_field(decode=nested("User"))
    # Create-only. The team that this project is shared with.
    team: Optional[Any] = api_field(decode=nested("Team"))

    @with_api_error_handling("fetching project {self.gid}")
    def fetch(self, client, *options: Options) -> "Project":
        """Load the full details for this project in place."""
        logger.debug(f"Loading project details for {self.name!r}")
        client.get(f"/projects/{self.gid}", None, self.update_from, *options)
        return self

    @with_api_error_handling("updating project {self.gid}")
    def update(self, client, request: UpdateProjectRequest, *options: Options) -> "Project":
        """
        Apply new values to this project.

        Specify only the fields to change, or changes made by another user
        since the project was retrieved may be overwritten.
        """
        logger.debug(f"Updating project {self.name!r}")
        client.put(f"/projects/{self.gid}", request, self.update_from, *options)
        return self

    # ========== Tasks ==========

    @with_api_error_handling("listing tasks in project {self.gid}")
    def tasks(self, client, *options: Options) -> Tuple[List[Task], Optional[NextPage]]:
        """Return one page of tasks in this project."""
        logger.debug(f"Listing tasks in {self.name!r}")
        return client.get(f"/projects/{self.gid}/tasks", None, list_of(Task), *options)

    def all_tasks(self, client, *options: Options) -> List[Task]:
        """Page through every task in this project."""
        return fetch_all(lambda *opts: self.tasks(client, *opts), TASKS_PAGE_SIZE, *options)

    # ========== Sections ==========

    @with_api_error_handling("listing sections in project {self.gid}")
    def sections(self, client, *options: Options) -> Tuple[List[Section], Optional[NextPage]]:
        """Return one page of sections in this project."""
        logger.debug(f"Listing sections in {self.name!r}")
        return client.get(f"/projects/{self.gid}/sections", None, list_of(Section), *options)

    @with_api_error_handling("creating section in project {self.gid}")
    def create_section(self, client, section: SectionBase, *options: Options) -> Section:
        logger.info(f"Creating section {section.name!r}")
        return client.post(f"/projects/{self.gid}/sections", section, Section, *options)

    @with_api_error_handling("moving section in project {self.gid}")
    def insert_section(self, client, request: SectionInsertRequest, *options: Options) -> None:
        """
        Move a section relative to another one.

        Moving sections is only supported in board views.
        """
        logger.info(f"Moving section {request.section}")
        client.post(f"/projects/{self.gid}/sections/insert", request, None, *options)

    # ========== Custom fields ==========

    @with_api_error_handling("listing custom field settings in project {self.gid}")
    def custom_field_settings(
        self, client, *options: Options
    ) -> Tuple[List[CustomFieldSetting], Optional[NextPage]]:
        """Return one page of the custom fields attached to this project."""
        logger.debug(f"Listing custom field settings in {self.name!r}")
        return client.get(
            f"/projects/{self.gid}/custom_field_settings",
            None,
            list_of(CustomFieldSetting),
            *options,
        )


@with_api_error_handling("creating project {project.name}")
def create_project(client, project: CreateProjectRequest, *options: Options) -> Project:
    """
    Create a new project in a workspace.

    In organizations the request must also name a team.

    Example:
        project = create_project(client, CreateProjectRequest(
            name="Launch", workspace=workspace.gid, team=team.gid,
        ))
    """
    logger.info(f"Creating project {project.name!r}")
    return client.post("/projects", project, Project, *options)
