"""Design document parsing and structural validation."""

from .markdown import parse_sections
from .schemas import SCHEMAS, DocumentSchema, DocumentValidation, get_schema, schema_for_component_type
from .sources import DocumentSource, FileSystemDocumentSource, InMemoryDocumentSource

__all__ = [
    "parse_sections",
    "DocumentSchema",
    "DocumentValidation",
    "SCHEMAS",
    "get_schema",
    "schema_for_component_type",
    "DocumentSource",
    "FileSystemDocumentSource",
    "InMemoryDocumentSource",
]
