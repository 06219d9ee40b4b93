"""Load analysis snapshots from YAML files.

A snapshot lists components with their parent and dependency ids, the
files that exist and the failing tests::

    project:
      module_name: MyApp
    components:
      - id: users
        name: Users
        module_name: Accounts.Users
        type: repository
        parent: accounts
        depends_on: [repo]
        priority: 1
    files:
      - docs/design/my_app/accounts/users.md
    failures:
      - file: tests/my_app/accounts/test_users.py
        title: test_create_user
    documents:
      docs/design/my_app/accounts/users.md: |
        ## Functions
        ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from .components.models import Component, Dependency
from .config import ProjectConfig
from .constants import DEFAULT_COMPONENT_TYPE
from .testrun import TestFailure


class ComponentEntry(BaseModel):
    id: str
    name: str
    module_name: str
    type: str = DEFAULT_COMPONENT_TYPE
    description: Optional[str] = None
    priority: Optional[int] = None
    parent: Optional[str] = None
    depends_on: List[str] = Field(default_factory=list)

    def to_component(self) -> Component:
        return Component(
            id=self.id,
            name=self.name,
            module_name=self.module_name,
            type=self.type,
            description=self.description,
            priority=self.priority,
            parent_component_id=self.parent,
        )


class Snapshot(BaseModel):
    project: Optional[ProjectConfig] = None
    components: List[ComponentEntry] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    failures: List[TestFailure] = Field(default_factory=list)
    documents: Dict[str, str] = Field(default_factory=dict)

    def to_components(self) -> List[Component]:
        return [entry.to_component() for entry in self.components]

    def edges(self) -> List[Dependency]:
        return [
            Dependency(source_component_id=entry.id, target_component_id=target)
            for entry in self.components
            for target in entry.depends_on
        ]


def load_snapshot(path: str | Path) -> Snapshot:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return Snapshot.model_validate(data)
