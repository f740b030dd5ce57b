"""
Rule Catalog Loader
===================

Loads an optional YAML override of the routing rule table at startup.

File format::

    change_intent: [apply, proceed, go ahead]
    approval_message: "Confirm maintenance window, backups and rollback plan."
    categories:
      Networking:
        topic: [vlan, trunk, bgp]
        subtopics:
          - name: cisco
            keywords: [cisco, nx-os]
      ServerOS: {}

Categories, the change-intent set and the approval message that the file
leaves out keep their built-in values. The catalog is read once; there is no
hot reload.
"""

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.config import Category
from src.core import ConfigurationException
from src.shared.infrastructure.logging import get_logger
from src.triage.domain import DEFAULT_RULE_TABLE, KeywordSet, RoutingRule, RuleTable

logger = get_logger(__name__)


class SubtopicConfig(BaseModel):
    """A named subtopic keyword set."""
    name: str = Field(..., min_length=1)
    keywords: List[str] = Field(..., min_length=1)


class CategoryRuleConfig(BaseModel):
    """Routing rule for one category. No topic means the category is not gated."""
    topic: Optional[List[str]] = Field(default=None, description="Topic gate keywords")
    subtopics: List[SubtopicConfig] = Field(default_factory=list)


class RuleCatalogConfig(BaseModel):
    """
    Rule catalog loaded from YAML.

    Keys under ``categories`` must be category labels.
    """
    categories: Dict[Category, CategoryRuleConfig] = Field(default_factory=dict)
    change_intent: Optional[List[str]] = None
    approval_message: Optional[str] = None

    @field_validator("change_intent")
    @classmethod
    def validate_change_intent(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and not v:
            raise ValueError("change_intent must not be empty")
        return v

    @field_validator("approval_message")
    @classmethod
    def validate_approval_message(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("approval_message must not be blank")
        return v

    def to_rule_table(self, base: RuleTable, source: str) -> RuleTable:
        """Overlay this catalog on ``base``."""
        rules = dict(base.rules)
        for category, rule_config in self.categories.items():
            topic = None
            if rule_config.topic is not None:
                topic = KeywordSet.of(f"{category.value.lower()}-topic", *rule_config.topic)
            rules[category] = RoutingRule(
                category=category,
                topic=topic,
                subtopics=tuple(
                    KeywordSet.of(s.name, *s.keywords) for s in rule_config.subtopics
                ),
            )

        change_intent = base.change_intent
        if self.change_intent is not None:
            change_intent = KeywordSet.of("change-intent", *self.change_intent)

        approval_message = base.approval_message
        if self.approval_message is not None:
            approval_message = self.approval_message

        return RuleTable(
            rules=rules,
            change_intent=change_intent,
            approval_message=approval_message,
            source=source,
        )


class RuleCatalogLoader:
    """Reads the rule catalog file and builds an immutable RuleTable."""

    def __init__(self, base: RuleTable = DEFAULT_RULE_TABLE):
        self._base = base

    def load(self, path: Optional[Path]) -> RuleTable:
        """
        Load the catalog at ``path``.

        Returns the built-in table when no file exists.

        Raises:
            ConfigurationException: unreadable or invalid catalog
        """
        if path is None or not Path(path).exists():
            logger.warning(
                "Triage rule catalog not found, using built-in rules",
                extra={"path": str(path) if path else None}
            )
            return self._base

        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationException(
                f"Cannot read triage rule catalog: {str(e)}",
                {"path": str(path)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationException(
                "Triage rule catalog must be a mapping",
                {"path": str(path)}
            )

        try:
            table = RuleCatalogConfig.model_validate(data).to_rule_table(self._base, source=str(path))
        except (ValidationError, ValueError) as e:
            raise ConfigurationException(
                f"Invalid triage rule catalog: {str(e)}",
                {"path": str(path)}
            ) from e

        logger.info(
            "Triage rule catalog loaded",
            extra={"path": str(path), "categories": [str(c) for c in (data.get("categories") or {})]}
        )
        return table
