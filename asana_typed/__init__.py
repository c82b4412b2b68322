#!/usr/bin/env python3
"""
asana_typed - Typed Python client for the Asana REST API

Resources are dataclasses; every request goes through one pipeline that
merges options, encodes the query or body, unwraps the response envelope and
classifies errors with retry hints. Responses to GET requests can be cached.

Usage:
    from asana_typed import (
        # Client
        Client,
        Options,
        MapCache,
        fetch_all,

        # Resources
        list_workspaces,
        current_user,
        create_task,
        query_tasks,
        CreateTaskRequest,
        Task,

        # Errors
        is_rate_limited,
        retry_after,
    )

    client = Client.with_access_token(token, cache=MapCache(300))
    for workspace in list_workspaces(client):
        for project in workspace.all_projects(client):
            tasks = project.all_tasks(client, Options(fields=["name", "completed"]))

Configuration:
    # Set up alert callback for critical issues
    from asana_typed import get_config

    config = get_config()
    config.set_alert_callback(my_alert_handler)
    client = Client.from_config(config)
"""

# Error classes
from .errors import (
    AsanaClientError,
    AsanaValidationError,
    AsanaEncodingError,
    AsanaTransportError,
    AsanaDecodeError,
    AsanaProtocolError,
    AsanaStorageError,
    AsanaTokenError,
    AsanaOperationError,
    AsanaAPIError,
    AsanaAuthenticationError,
    AsanaNotFoundError,
    AsanaPayloadTooLargeError,
    AsanaRateLimitError,
    AsanaServerError,
    classify,
    is_auth_error,
    is_not_found_error,
    is_payload_too_large,
    is_rate_limited,
    is_recoverable_error,
    retry_after,
)

# Infrastructure
from .infrastructure import (
    BASE_URL,
    get_config,
    AsanaSDKConfig,
    raise_alert,
    with_api_error_handling,
)

# Options
from .options import (
    Feature,
    Options,
    merge_options,
)

# Cache
from .cache import (
    Cache,
    MapCache,
)

# Client pipeline
from .client import (
    Client,
    NextPage,
    fetch_all,
)

# Authentication
from .oauth import (
    App,
    BearerAuth,
)
from .token_manager import (
    TokenManager,
    DEFAULT_TOKEN_FILE,
)

# Resources
from .attachments import (
    Attachment,
    ExternalAttachmentRequest,
)
from .custom_fields import (
    CustomField,
    CustomFieldSetting,
    CustomFieldValue,
    EnumValue,
)
from .portfolios import Portfolio
from .tasks import (
    AddDependenciesRequest,
    AddDependentsRequest,
    AddProjectRequest,
    CreateMembership,
    CreateTaskRequest,
    ExternalData,
    Membership,
    SetParentRequest,
    Story,
    Task,
    TaskQuery,
    UpdateTaskRequest,
    create_task,
    query_tasks,
)
from .sections import (
    Section,
    SectionBase,
    SectionInsertRequest,
)
from .projects import (
    CreateProjectRequest,
    Project,
    ProjectStatus,
    UpdateProjectRequest,
    View,
    create_project,
)
from .tags import (
    Tag,
    TagBase,
)
from .teams import Team
from .users import (
    User,
    current_user,
)
from .user_task_lists import (
    UserTaskList,
    user_task_list_for_user,
)
from .workspaces import (
    Workspace,
    get_workspace_by_name,
    list_workspaces,
)

__all__ = [
    # Errors
    "AsanaClientError",
    "AsanaValidationError",
    "AsanaEncodingError",
    "AsanaTransportError",
    "AsanaDecodeError",
    "AsanaProtocolError",
    "AsanaStorageError",
    "AsanaTokenError",
    "AsanaOperationError",
    "AsanaAPIError",
    "AsanaAuthenticationError",
    "AsanaNotFoundError",
    "AsanaPayloadTooLargeError",
    "AsanaRateLimitError",
    "AsanaServerError",
    "classify",
    "is_auth_error",
    "is_not_found_error",
    "is_payload_too_large",
    "is_rate_limited",
    "is_recoverable_error",
    "retry_after",
    # Infrastructure
    "BASE_URL",
    "get_config",
    "AsanaSDKConfig",
    "raise_alert",
    "with_api_error_handling",
    # Options
    "Feature",
    "Options",
    "merge_options",
    # Cache
    "Cache",
    "MapCache",
    # Client
    "Client",
    "NextPage",
    "fetch_all",
    # Authentication
    "App",
    "BearerAuth",
    "TokenManager",
    "DEFAULT_TOKEN_FILE",
    # Attachments
    "Attachment",
    "ExternalAttachmentRequest",
    # Custom fields
    "CustomField",
    "CustomFieldSetting",
    "CustomFieldValue",
    "EnumValue",
    # Portfolios
    "Portfolio",
    # Tasks
    "AddDependenciesRequest",
    "AddDependentsRequest",
    "AddProjectRequest",
    "CreateMembership",
    "CreateTaskRequest",
    "ExternalData",
    "Membership",
    "SetParentRequest",
    "Story",
    "Task",
    "TaskQuery",
    "UpdateTaskRequest",
    "create_task",
    "query_tasks",
    # Sections
    "Section",
    "SectionBase",
    "SectionInsertRequest",
    # Projects
    "CreateProjectRequest",
    "Project",
    "ProjectStatus",
    "UpdateProjectRequest",
    "View",
    "create_project",
    # Tags
    "Tag",
    "TagBase",
    # Teams
    "Team",
    # Users
    "User",
    "current_user",
    # User task lists
    "UserTaskList",
    "user_task_list_for_user",
    # Workspaces
    "Workspace",
    "get_workspace_by_name",
    "list_workspaces",
]

__version__ = "1.0.0"
