#!/usr/bin/env python3
"""
Asana Team Operations

Teams group related projects and people together within an organization.
Every project in an organization belongs to a team.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .client import NextPage, fetch_all
from .infrastructure import with_api_error_handling
from .options import Options
from .projects import CreateProjectRequest, Project
from .types import Resource, WithGID, WithName, api_field, list_of, nested

# Configure logging
logger = logging.getLogger(__name__)

PROJECTS_PAGE_SIZE = 100


@dataclass
class Team(Resource, WithName, WithGID):
    # The organization the team belongs to
    organization: Optional[Any] = api_field(decode=nested("Workspace"))
    description: Optional[str] = None

    @with_api_error_handling("fetching team {self.gid}")
    def fetch(self, client, *options: Options) -> "Team":
        """
        Load the full details for this team in place.

        The organization is not returned by default, so every team field is
        requested unless options select others.
        """
        logger.debug(f"Loading team details for {self.name!r}")
        opts = (Options.fields_for(Team),) + options
        client.get(f"/teams/{self.gid}", None, self.update_from, *opts)
        return self

    @with_api_error_handling("listing projects in team {self.gid}")
    def projects(self, client, *options: Options) -> Tuple[List[Project], Optional[NextPage]]:
        """Return one page of projects in this team."""
        logger.debug(f"Listing projects in team {self.name!r}")
        return client.get(f"/teams/{self.gid}/projects", None, list_of(Project), *options)

    def all_projects(self, client, *options: Options) -> List[Project]:
        """Page through every project in this team."""
        return fetch_all(lambda *opts: self.projects(client, *opts), PROJECTS_PAGE_SIZE, *options)

    @with_api_error_handling("creating project in team {self.gid}")
    def create_project(self, client, project: CreateProjectRequest, *options: Options) -> Project:
        """Create a new project in this team."""
        logger.info(f"Creating project {project.name!r} in team {self.name!r}")
        return client.post(f"/teams/{self.gid}/projects", project, Project, *options)
