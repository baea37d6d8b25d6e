"""
Rule content directory models.

The content directory is the in-memory form of the rule definitions,
already extracted from their source files. It is consumed by the content
reconciler and is never persisted as-is.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class DisabledMetadata(BaseModel):
    """Why an error key was disabled upstream and what to do instead."""

    reason: str = ""
    remediation: str = ""


class ErrorKeyMetadata(BaseModel):
    """
    Metadata describing one error key of a rule.

    Attributes:
        condition: Condition under which the error key is reported
        description: Short human-readable description
        impact: Impact name, resolved through GlobalRuleConfig.impact
        likelihood: Likelihood of the issue (integer scale)
        publish_date: When the error key was published; required
        status: "active" or "inactive"; anything else is rejected on load
        tags: Free-form tags (order irrelevant)
        disabled: Set for deprecated error keys; kept in memory only
    """

    condition: str = ""
    description: str = ""
    impact: str = ""
    likelihood: int = 0
    publish_date: datetime
    status: str = ""
    tags: list[str] = Field(default_factory=list)
    disabled: DisabledMetadata | None = None

    @field_validator("publish_date", mode="before")
    @classmethod
    def parse_publish_date(cls, value):
        # Rule metadata uses "YYYY-MM-DD HH:MM:SS" as well as RFC 3339;
        # stored as naive UTC in TIMESTAMP columns
        if isinstance(value, str):
            value = datetime.fromisoformat(value.strip())
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class RuleErrorKeyContent(BaseModel):
    """Generic text plus metadata for a single error key."""

    generic: str = ""
    metadata: ErrorKeyMetadata


class RulePluginInfo(BaseModel):
    """Plugin information; python_module is the rule's natural key."""

    name: str = ""
    node_id: str = ""
    product_code: str = ""
    python_module: str = ""


class RuleContent(BaseModel):
    """
    Content of a single rule.

    Attributes:
        summary: Summary text
        reason: Reason text
        resolution: Resolution text
        more_info: Additional information text
        plugin: Plugin metadata (name, module)
        error_keys: Mapping of error key name to its content
    """

    summary: str = ""
    reason: str = ""
    resolution: str = ""
    more_info: str = ""
    plugin: RulePluginInfo = Field(default_factory=RulePluginInfo)
    error_keys: dict[str, RuleErrorKeyContent] = Field(default_factory=dict)


class GlobalRuleConfig(BaseModel):
    """Configuration shared by all rules: impact name to impact level."""

    impact: dict[str, int] = Field(default_factory=dict)


class RuleContentDirectory(BaseModel):
    """Complete set of rule content: global config plus rules keyed by name."""

    config: GlobalRuleConfig = Field(default_factory=GlobalRuleConfig)
    rules: dict[str, RuleContent] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "config": {"impact": {"Low": 1, "Medium": 2}},
                "rules": {
                    "node_installer_degraded": {
                        "summary": "summary",
                        "reason": "reason",
                        "resolution": "resolution",
                        "more_info": "more info",
                        "plugin": {
                            "name": "node installer degraded",
                            "python_module": "ccx_rules_ocp.external.rules.node_installer_degraded",
                        },
                        "error_keys": {
                            "NODE_INSTALLER_DEGRADED": {
                                "generic": "generic",
                                "metadata": {
                                    "condition": "condition",
                                    "description": "description",
                                    "impact": "Medium",
                                    "likelihood": 3,
                                    "publish_date": "2020-04-08 00:42:00",
                                    "status": "active",
                                    "tags": ["openshift", "incident"],
                                },
                            }
                        },
                    }
                },
            }
        }
