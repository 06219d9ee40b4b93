from __future__ import annotations

import posixpath
import re
from typing import Dict, Optional

from ..config import ProjectLayout
from ..constants import CONTEXT_COMPONENT_TYPES
from .models import Component

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert ``MyApp`` / ``HTTPClient`` style names to ``my_app`` / ``http_client``."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def module_to_path(module_name: str) -> str:
    """``MyApp.Accounts.Users`` -> ``my_app/accounts/users``."""
    parts = [underscore(part) for part in module_name.split(".") if part]
    return "/".join(parts)


def full_module_name(component: Component, project_module_name: str = "") -> str:
    name = component.module_name
    if not project_module_name:
        return name
    prefix = f"{project_module_name}."
    if name.startswith(prefix):
        name = name[len(prefix):]
    return f"{project_module_name}.{name}"


def expected_files(
    component: Component,
    project_module_name: str = "",
    layout: Optional[ProjectLayout] = None,
) -> Dict[str, str]:
    """Map artifact keys to the paths where the component's files should live."""
    layout = layout or ProjectLayout()
    module_path = module_to_path(full_module_name(component, project_module_name))
    variables = {
        "module_path": module_path,
        "module_dir": posixpath.dirname(module_path),
        "module_basename": posixpath.basename(module_path),
    }

    def render(template: str) -> str:
        return posixpath.normpath(template.format(**variables))

    files = {
        "design_file": render(layout.design_file),
        "spec_file": render(layout.spec_file),
        "code_file": render(layout.code_file),
        "test_file": render(layout.test_file),
    }
    if component.type in CONTEXT_COMPONENT_TYPES:
        files["review_file"] = render(layout.review_file)
    return files
