"""
Rule catalog models: rule rows, rule error key rows and their joined view.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Rule(BaseModel):
    """
    A rule catalog entry.

    Attributes:
        module: Dotted plugin module path, globally unique (PK)
        name: Human-readable rule name
        summary: Summary text
        reason: Reason text
        resolution: Resolution text
        more_info: Additional information text
    """

    module: str
    name: str = ""
    summary: str = ""
    reason: str = ""
    resolution: str = ""
    more_info: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "module": "ccx_rules_ocp.external.rules.nodes_kubelet_version_check",
                "name": "kubelet version check",
                "summary": "summary",
                "reason": "reason",
                "resolution": "resolution",
                "more_info": "more info",
            }
        }


class RuleErrorKey(BaseModel):
    """
    A single failure condition a rule can report.

    Attributes:
        error_key: Error key name (PK together with rule_module)
        rule_module: Module of the owning rule (FK to Rule)
        condition: Condition text
        description: Description text
        impact: Numeric impact level
        likelihood: Numeric likelihood
        publish_date: When the error key was published
        active: Whether the error key is active
        generic: Generic remediation text
        tags: Tags (order irrelevant)
    """

    error_key: str
    rule_module: str
    condition: str = ""
    description: str = ""
    impact: int = 0
    likelihood: int = 0
    publish_date: datetime
    active: bool = True
    generic: str = ""
    tags: list[str] = Field(default_factory=list)


class RuleWithContent(BaseModel):
    """Rule and one of its error keys merged into a single record."""

    module: str
    name: str
    summary: str
    reason: str
    resolution: str
    more_info: str
    error_key: str
    condition: str
    description: str
    total_risk: int
    publish_date: datetime
    active: bool
    generic: str
    tags: list[str] = Field(default_factory=list)
