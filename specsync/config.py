from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from .constants import CONFIG_ENV_VAR, DATABASE_URL_ENV_VARS, DEFAULT_CONFIG_FILE, DEFAULT_MAX_STEP_ATTEMPTS


class ProjectLayout(BaseModel):
    """Path templates used to locate a component's artifacts.

    Templates are formatted with ``module_path`` (``my_app/accounts/users``),
    ``module_dir`` (``my_app/accounts``) and ``module_basename`` (``users``).
    """

    design_file: str = "docs/design/{module_path}.md"
    spec_file: str = "docs/spec/{module_path}.spec.md"
    code_file: str = "src/{module_path}.py"
    test_file: str = "tests/{module_dir}/test_{module_basename}.py"
    review_file: str = "docs/design/{module_path}/design_review.md"


class ProjectConfig(BaseModel):
    """Target application naming conventions."""

    module_name: str = ""
    layout: ProjectLayout = ProjectLayout()


class SessionsConfig(BaseModel):
    """Session orchestration settings."""

    max_step_attempts: Optional[int] = Field(default=DEFAULT_MAX_STEP_ATTEMPTS, ge=1)


class SpecSyncConfig(BaseModel):
    """Top-level configuration model."""

    project: ProjectConfig = ProjectConfig()
    sessions: SessionsConfig = SessionsConfig()
    database_url: Optional[str] = None
    log_level: str = "WARNING"


def load_config(path: Optional[str] = None) -> SpecSyncConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SPECSYNC_CONFIG env
            variable or 'specsync.yaml' in the current directory.
    """

    config_path = path or os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SpecSyncConfig(**data)
    else:
        config = SpecSyncConfig()

    for env_var in DATABASE_URL_ENV_VARS:
        env_db_url = os.getenv(env_var)
        if env_db_url:
            config.database_url = env_db_url
            break
    return config
