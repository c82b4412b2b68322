#!/usr/bin/env python3
"""
Asana Portfolio Types

A portfolio is a collection of projects owned by a user. Portfolios are
listed through Workspace.portfolios().
"""

from dataclasses import dataclass
from typing import Any, Optional

from .types import Resource, WithColor, WithCreated, WithGID, WithName, WithWorkspace, api_field, nested


@dataclass
class Portfolio(Resource, WithColor, WithWorkspace, WithCreated, WithName, WithGID):
    # Read-only. The user who owns the portfolio.
    owner: Optional[Any] = api_field(decode=nested("User"))
