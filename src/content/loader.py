"""
Rule content snapshot loading.

Loads an already-extracted rule content directory from a YAML snapshot
and validates it into RuleContentDirectory.
"""

from pathlib import Path

import yaml

from src.core.models import RuleContentDirectory


class ContentDirectoryLoader:
    """
    Loads a rule content directory from a YAML snapshot file.

    Expected YAML format:
    ```yaml
    config:
      impact:
        Low: 1
        Medium: 2

    rules:
      node_installer_degraded:
        summary: "..."
        reason: "..."
        resolution: "..."
        more_info: "..."
        plugin:
          name: "node installer degraded"
          python_module: "ccx_rules_ocp.external.rules.node_installer_degraded"
        error_keys:
          NODE_INSTALLER_DEGRADED:
            generic: "..."
            metadata:
              condition: "..."
              description: "..."
              impact: Medium
              likelihood: 3
              publish_date: "2020-04-08 00:42:00"
              status: active
              tags: [openshift, incident]
    ```
    """

    def __init__(self, content_path: str | Path):
        """
        Initialize the content loader.

        Args:
            content_path: Path to the YAML snapshot file
        """
        self.content_path = Path(content_path)
        if not self.content_path.exists():
            raise FileNotFoundError(f"Rule content file not found: {content_path}")

    def load(self) -> RuleContentDirectory:
        """
        Load and validate the content directory.

        Returns:
            RuleContentDirectory

        Raises:
            ValueError: If the file has no 'rules' section
            pydantic.ValidationError: If the content does not fit the models
        """
        with open(self.content_path) as f:
            content = yaml.safe_load(f)

        if not content or "rules" not in content:
            raise ValueError("Content file must contain 'rules' section")

        for rule_name, rule in (content["rules"] or {}).items():
            if not isinstance(rule, dict):
                raise ValueError(f"Rule '{rule_name}' must be a mapping")

        content["rules"] = content["rules"] or {}
        return RuleContentDirectory.model_validate(content)
