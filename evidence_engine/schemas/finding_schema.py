"""Input schemas handed to the engine by the upstream analysis stage.

A Finding is a flagged quote awaiting verification. PageContext optionally
describes the surrounding document and only biases query construction and
relevance scoring. Both are frozen: the engine never mutates its inputs.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class IssueType(str, Enum):
    """Why the upstream stage flagged the quote."""

    MISINFORMATION = "misinformation"
    FALLACY = "fallacy"
    BIAS = "bias"


class Finding(BaseModel):
    """A flagged quote with issue-type tags awaiting independent verification.

    Only misinformation findings carry a correction. Confidence and severity
    are the upstream model's scores and are not used for classification.
    """

    id: Optional[str] = Field(default=None, description="Upstream finding identifier")
    quote: str = Field(..., description="Verbatim text span from the document")
    issue_types: list[IssueType] = Field(
        ...,
        min_length=1,
        description="One or more of misinformation, fallacy, bias",
    )
    rationale: str = Field(default="", description="Why the quote was flagged")
    correction: Optional[str] = Field(
        default=None,
        description="Corrected statement (misinformation findings only)",
    )
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    severity: float = Field(default=0.5, ge=0.0, le=1.0)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "id": "finding-7",
                    "quote": "The bridge collapsed because of sabotage",
                    "issue_types": ["misinformation"],
                    "rationale": "Investigators attributed the collapse to corrosion.",
                    "correction": "Inspectors found corrosion caused the collapse.",
                    "confidence": 0.8,
                    "severity": 0.7,
                }
            ]
        },
    }

    @property
    def is_misinformation(self) -> bool:
        return IssueType.MISINFORMATION in self.issue_types


class PageContext(BaseModel):
    """Optional description of the document a finding was extracted from."""

    summary: str = Field(default="", description="Free-text page summary")
    topic_keywords: list[str] = Field(default_factory=list)
    entity_keywords: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("topic_keywords", "entity_keywords", mode="before")
    @classmethod
    def drop_blank_keywords(cls, value: object) -> object:
        """Strip keywords and drop empty ones."""
        if isinstance(value, list):
            return [str(v).strip() for v in value if str(v).strip()]
        return value
