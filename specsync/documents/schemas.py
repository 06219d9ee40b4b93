"""Section schemas for design documents, keyed by document type."""

from __future__ import annotations

from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

from .markdown import parse_sections, section_key

SectionRequirement = Union[str, List[str]]


class DocumentValidation(BaseModel):
    """Outcome of validating one document against a schema."""

    document_type: str
    valid: bool
    sections: List[str] = Field(default_factory=list)
    missing_sections: List[str] = Field(default_factory=list)
    disallowed_sections: List[str] = Field(default_factory=list)

    def error_message(self) -> str:
        problems = []
        if self.missing_sections:
            problems.append("missing required sections: " + ", ".join(self.missing_sections))
        if self.disallowed_sections:
            problems.append("disallowed sections: " + ", ".join(self.disallowed_sections))
        return f"Invalid {self.document_type} document: " + "; ".join(problems)


class DocumentSchema(BaseModel):
    """Required and permitted H2 sections for a document type.

    An entry of ``required_sections`` may be a list, meaning at least one of
    the listed sections must be present. When ``allow_additional`` is false,
    any section not named as required or optional is disallowed; sections in
    ``disallowed_sections`` are rejected either way.
    """

    document_type: str
    required_sections: List[SectionRequirement] = Field(default_factory=list)
    optional_sections: List[str] = Field(default_factory=list)
    disallowed_sections: List[str] = Field(default_factory=list)
    allow_additional: bool = False

    model_config = ConfigDict(frozen=True)

    def permitted_sections(self) -> set[str]:
        permitted = {section_key(s) for s in self.optional_sections}
        for requirement in self.required_sections:
            names = requirement if isinstance(requirement, list) else [requirement]
            permitted.update(section_key(name) for name in names)
        return permitted

    def validate_content(self, content: str) -> DocumentValidation:
        present = list(parse_sections(content))
        present_set = set(present)

        missing: List[str] = []
        for requirement in self.required_sections:
            if isinstance(requirement, list):
                if not any(section_key(name) in present_set for name in requirement):
                    missing.append(" or ".join(requirement))
            elif section_key(requirement) not in present_set:
                missing.append(requirement)

        explicitly_disallowed = {section_key(s) for s in self.disallowed_sections}
        permitted = self.permitted_sections()
        disallowed = [
            name
            for name in present
            if name in explicitly_disallowed
            or (not self.allow_additional and name not in permitted)
        ]

        return DocumentValidation(
            document_type=self.document_type,
            valid=not missing and not disallowed,
            sections=present,
            missing_sections=missing,
            disallowed_sections=disallowed,
        )


SPEC = DocumentSchema(
    document_type="spec",
    required_sections=[["delegates", "functions"], "dependencies"],
    optional_sections=["purpose", "fields"],
)

SCHEMAS: Dict[str, DocumentSchema] = {
    "spec": SPEC,
    "schema": DocumentSchema(
        document_type="schema",
        required_sections=["fields"],
        optional_sections=["purpose", "functions", "dependencies"],
    ),
    "context_spec": DocumentSchema(
        document_type="context_spec",
        required_sections=[["delegates", "functions"], "dependencies", "components"],
        optional_sections=["purpose", "fields"],
    ),
    "design_review": DocumentSchema(
        document_type="design_review",
        required_sections=["overview", "architecture", "integration", "conclusion"],
        optional_sections=["stories", "issues"],
    ),
    "dynamic_document": DocumentSchema(
        document_type="dynamic_document",
        allow_additional=True,
    ),
}


def get_schema(document_type: str) -> DocumentSchema:
    """Schema for ``document_type``, falling back to the generic spec schema."""
    return SCHEMAS.get(document_type, SPEC)


def schema_for_component_type(component_type: str) -> DocumentSchema:
    if component_type in ("context", "coordination_context"):
        return SCHEMAS["context_spec"]
    if component_type == "schema":
        return SCHEMAS["schema"]
    return SPEC
