"""Component records and graph builders."""

from .models import (
    NOT_LOADED,
    ArtifactType,
    Component,
    ComponentStatus,
    Dependency,
    NextAction,
    NotLoaded,
    Requirement,
    TestStatus,
    determine_test_status,
    loaded,
)

__all__ = [
    "NOT_LOADED",
    "ArtifactType",
    "Component",
    "ComponentStatus",
    "Dependency",
    "NextAction",
    "NotLoaded",
    "Requirement",
    "TestStatus",
    "determine_test_status",
    "loaded",
]
