#!/usr/bin/env python3
"""
Asana Task Operations

Tasks are the basic unit of work in Asana. A task can belong to several
projects, sit in a section of each, carry custom field values, have
subtasks, and depend on other tasks.

Queries return a compact representation of each task (typically gid and
name); use Options(fields=[...]) or Options.fields_for(Task) to select more.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from .attachments import Attachment, ExternalAttachmentRequest
from .client import NextPage
from .infrastructure import with_api_error_handling
from .options import Options
from .types import (
    Resource,
    WithCreated,
    WithDates,
    WithFollowers,
    WithGID,
    WithName,
    WithNotes,
    WithParent,
    WithWorkspace,
    api_field,
    date_field,
    datetime_field,
    list_of,
    nested,
    nested_list,
)

# Configure logging
logger = logging.getLogger(__name__)

# Placement value meaning "start of list" for insert_after, "end" for insert_before
INSERT_AT_END = "-"


@dataclass
class TaskQuery:
    """
    Filters for query_tasks().

    A project, section or tag is required unless both assignee and workspace
    are given. Dates may be 'now' or a date string.
    """

    # A GID, 'me' or an email address. Requires workspace.
    assignee: Optional[str] = None
    project: Optional[str] = None
    # Only supported in board views.
    section: Optional[str] = None
    tag: Optional[str] = None
    # Requires assignee.
    workspace: Optional[str] = None
    # Only tasks that are incomplete or completed since this time
    completed_since: Optional[str] = None
    modified_since: Optional[str] = None


@dataclass
class ExternalData(Resource):
    """
    App-specific metadata stored on a task.

    Only visible to the OAuth app that set it. The id is capped at 1,024
    characters and the data blob at 32,768.
    """

    gid: Optional[str] = None
    data: Optional[str] = None


@dataclass
class Membership(Resource):
    """A project the task is in and the section within it."""

    project: Optional[Any] = api_field(decode=nested("Project"))
    section: Optional[Any] = api_field(decode=nested("Section"))


@dataclass
class CreateMembership(Resource):
    project: Optional[str] = None
    section: Optional[str] = None


@dataclass
class TaskBase(Resource, WithNotes, WithName):
    """The modifiable fields of a task."""

    # Subtype such as default_task, milestone or section
    resource_subtype: Optional[str] = None
    # Scheduling status for the assignee. Only valid with an assignee.
    assignee_status: Optional[str] = None
    completed: Optional[bool] = None
    # Should not be used together with due_at.
    due_on: Optional[date] = date_field()
    due_at: Optional[datetime] = datetime_field()
    # due_on or due_at must be present when setting or unsetting start_on
    start_on: Optional[date] = date_field()
    # Oauth Required.
    external: Optional[ExternalData] = api_field(decode=nested("ExternalData"))
    # Requires the new_sections feature.
    is_rendered_as_separator: Optional[bool] = None


class _TaskRequestMixin:
    def validate(self) -> None:
        """Clear fields the API rejects in combination."""
        if not self.assignee:
            self.assignee_status = None
        if self.due_at is not None:
            self.due_on = None


@dataclass
class CreateTaskRequest(_TaskRequestMixin, TaskBase):
    # User to assign the task to; unset for an unassigned task
    assignee: Optional[str] = None
    followers: Optional[List[str]] = None
    workspace: Optional[str] = None
    parent: Optional[str] = None
    projects: Optional[List[str]] = None
    memberships: Optional[List[CreateMembership]] = None
    tags: Optional[List[str]] = None
    custom_fields: Optional[Dict[str, Any]] = None


@dataclass
class UpdateTaskRequest(_TaskRequestMixin, TaskBase):
    assignee: Optional[str] = None
    followers: Optional[List[str]] = None
    custom_fields: Optional[Dict[str, Any]] = None


@dataclass
class Story(Resource, WithCreated, WithGID):
    """An activity record (comment or system event) on a task."""

    text: Optional[str] = None
    html_text: Optional[str] = None
    type: Optional[str] = None
    resource_subtype: Optional[str] = None
    created_by: Optional[Any] = api_field(decode=nested("User"))
    target: Optional[Any] = api_field(decode=nested("Task"))


@dataclass
class AddProjectRequest:
    """
    Where to add a task in a project.

    insert_after="-" inserts at the start of the list and insert_before="-"
    at the end. With section set the task goes to the bottom of it.
    """

    project: str
    insert_after: Optional[str] = None
    insert_before: Optional[str] = None
    section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"project": self.project}
        if self.insert_after == INSERT_AT_END:
            body["insert_after"] = None
        elif self.insert_after:
            body["insert_after"] = self.insert_after
        if self.insert_before == INSERT_AT_END:
            body["insert_before"] = None
        elif self.insert_before:
            body["insert_before"] = self.insert_before
        if self.section:
            body["section"] = self.section
        return body


@dataclass
class SetParentRequest:
    """
    Change the parent of a task.

    parent=None removes the parent. At most one of insert_after and
    insert_before is sent; both must already be subtasks of the parent.
    """

    parent: Optional[str]
    insert_after: Optional[str] = None
    insert_before: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"parent": self.parent}
        if self.insert_after == INSERT_AT_END:
            body["insert_after"] = None
        elif self.insert_before == INSERT_AT_END:
            body["insert_before"] = None
        elif self.insert_after:
            body["insert_after"] = self.insert_after
        elif self.insert_before:
            body["insert_before"] = self.insert_before
        return body


@dataclass
class AddDependenciesRequest(Resource):
    # Tasks this task should depend on. A task can have at most 15.
    dependencies: List[str] = field(default_factory=list)


@dataclass
class AddDependentsRequest(Resource):
    # Tasks that should depend on this task. A task can have at most 30.
    dependents: List[str] = field(default_factory=list)


@dataclass
class Task(TaskBase, WithFollowers, WithWorkspace, WithParent, WithDates, WithGID):
    # True if the task is liked by the authorized user
    liked: Optional[bool] = None
    likes: Optional[List[Any]] = api_field(decode=nested_list("User"))
    num_likes: Optional[int] = None
    # Opt In.
    num_subtasks: Optional[int] = None
    assignee: Optional[Any] = api_field(decode=nested("User"))
    completed_at: Optional[datetime] = datetime_field()
    # Values recorded on this task; the gid of each is the custom field's gid
    custom_fields: Optional[List[Any]] = api_field(decode=nested_list("CustomFieldValue"))
    # Create-only. Change with add_project() and remove_project().
    projects: Optional[List[Any]] = api_field(decode=nested_list("Project"))
    memberships: Optional[List[Any]] = api_field(decode=nested_list("Membership"))
    tags: Optional[List[Any]] = api_field(decode=nested_list("Tag"))
    # Read-only. Compact references (gid only)
    dependencies: Optional[List[Any]] = api_field(decode=nested_list("Task"))
    dependents: Optional[List[Any]] = api_field(decode=nested_list("Task"))

    @with_api_error_handling("fetching task {self.gid}")
    def fetch(self, client, *options: Options) -> "Task":
        """Load the full details for this task in place."""
        logger.debug(f"Loading task details for {self.name!r}")
        client.get(f"/tasks/{self.gid}", None, self.update_from, *options)
        return self

    @with_api_error_handling("updating task {self.gid}")
    def update(self, client, request: UpdateTaskRequest, *options: Options) -> "Task":
        """Apply new values to this task and refresh it from the response."""
        logger.debug(f"Updating task {self.name!r}")
        client.put(f"/tasks/{self.gid}", request, self.update_from, *options)
        return self

    @with_api_error_handling("deleting task {self.gid}")
    def delete(self, client, *options: Options) -> None:
        logger.info(f"Deleting task {self.name!r}")
        client.delete(f"/tasks/{self.gid}", *options)

    # ========== Subtasks ==========

    @with_api_error_handling("listing subtasks of task {self.gid}")
    def subtasks(self, client, *options: Options) -> Tuple[List["Task"], Optional[NextPage]]:
        """Return one page of subtasks of this task."""
        logger.debug(f"Listing subtasks for {self.name!r}")
        return client.get(f"/tasks/{self.gid}/subtasks", None, list_of(Task), *options)

    @with_api_error_handling("creating subtask of task {self.gid}")
    def create_subtask(self, client, task: CreateTaskRequest, *options: Options) -> "Task":
        logger.info(f"Creating subtask {task.name!r}")
        return client.post(f"/tasks/{self.gid}/subtasks", task, Task, *options)

    @with_api_error_handling("setting parent of task {self.gid}")
    def set_parent(self, client, request: SetParentRequest, *options: Options) -> None:
        logger.debug(f"Setting the parent of task {self.gid} to {request.parent}")
        client.post(f"/tasks/{self.gid}/setParent", request, None, *options)

    # ========== Projects ==========

    @with_api_error_handling("adding task {self.gid} to project")
    def add_project(self, client, request: AddProjectRequest, *options: Options) -> None:
        """Add this task to an existing project at the requested location."""
        logger.debug(f"Adding task {self.gid} to project {request.project}")
        client.post(f"/tasks/{self.gid}/addProject", request, None, *options)

    @with_api_error_handling("removing task {self.gid} from project {project_gid}")
    def remove_project(self, client, project_gid: str, *options: Options) -> None:
        logger.debug(f"Removing task {self.gid} from project {project_gid}")
        client.post(f"/tasks/{self.gid}/removeProject", {"project": project_gid}, None, *options)

    # ========== Dependencies ==========

    @with_api_error_handling("adding dependencies to task {self.gid}")
    def add_dependencies(self, client, request: AddDependenciesRequest, *options: Options) -> None:
        """Mark tasks as dependencies of this task, if they are not already."""
        logger.debug(f"Adding dependencies to task {self.gid}")
        client.post(f"/tasks/{self.gid}/addDependencies", request, None, *options)

    @with_api_error_handling("adding dependents to task {self.gid}")
    def add_dependents(self, client, request: AddDependentsRequest, *options: Options) -> None:
        """Mark tasks as dependents of this task, if they are not already."""
        logger.debug(f"Adding dependents to task {self.gid}")
        client.post(f"/tasks/{self.gid}/addDependents", request, None, *options)

    # ========== Stories and attachments ==========

    @with_api_error_handling("listing stories of task {self.gid}")
    def stories(self, client, *options: Options) -> Tuple[List[Story], Optional[NextPage]]:
        """Return one page of stories (comments and activity) on this task."""
        logger.debug(f"Listing stories for {self.name!r}")
        return client.get(f"/tasks/{self.gid}/stories", None, list_of(Story), *options)

    @with_api_error_handling("listing attachments of task {self.gid}")
    def attachments(self, client, *options: Options) -> Tuple[List[Attachment], Optional[NextPage]]:
        """Return one page of attachments on this task."""
        logger.debug(f"Listing attachments for {self.name!r}")
        return client.get(f"/tasks/{self.gid}/attachments", None, list_of(Attachment), *options)

    @with_api_error_handling("uploading attachment {filename} to task {self.gid}")
    def create_attachment(
        self,
        client,
        stream: BinaryIO,
        filename: str,
        content_type: str,
        *options: Options,
    ) -> Attachment:
        """
        Upload a file and attach it to this task.

        The stream is closed once the upload has been sent.

        Example:
            with open("report.pdf", "rb") as f:
                task.create_attachment(client, f, "report.pdf", "application/pdf")
        """
        logger.info(f"Uploading attachment {filename!r} to task {self.name!r}")
        return client.post_multipart(
            f"/tasks/{self.gid}/attachments",
            "file",
            stream,
            filename,
            content_type,
            Attachment,
            *options,
        )

    @with_api_error_handling("create external attachment on task {self.gid}")
    def create_external_attachment(self, client, url: str, name: str, *options: Options) -> Attachment:
        """Attach a link to an externally hosted file to this task."""
        logger.info(f"Attaching external file {name!r} to task {self.name!r}")
        request = ExternalAttachmentRequest(parent=self.gid, url=url, name=name)
        return client.post("/attachments", request, Attachment, *options)


@with_api_error_handling("creating task {task.name}")
def create_task(client, task: CreateTaskRequest, *options: Options) -> Task:
    """
    Create a new task.

    The request is validated first: assignee_status is dropped when there is
    no assignee, and due_on is dropped when due_at is set.

    Example:
        task = create_task(client, CreateTaskRequest(
            name="Write release notes", workspace=workspace.gid,
        ))
    """
    logger.info(f"Creating task {task.name!r}")
    return client.post("/tasks", task, Task, *options)


@with_api_error_handling("querying tasks")
def query_tasks(client, query: TaskQuery, *options: Options) -> Tuple[List[Task], Optional[NextPage]]:
    """Return one page of compact task records matching the query."""
    logger.debug(f"Querying tasks: {query}")
    return client.get("/tasks", query, list_of(Task), *options)
