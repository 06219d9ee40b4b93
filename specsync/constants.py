"""Shared constants for specsync."""

DEFAULT_CONFIG_FILE = "specsync.yaml"
CONFIG_ENV_VAR = "SPECSYNC_CONFIG"
DATABASE_URL_ENV_VARS = ("SPECSYNC_DATABASE_URL", "DATABASE_URL")

# Upper bound on how many times a single step may run within one session.
DEFAULT_MAX_STEP_ATTEMPTS = 5

# Component types that own child components and a design review document.
CONTEXT_COMPONENT_TYPES = frozenset({"context", "coordination_context"})

DEFAULT_COMPONENT_TYPE = "other"
