"""Tests for the YAML rule catalog loader."""

from pathlib import Path

import pytest
import yaml

from src.config import Category
from src.core import ConfigurationException
from src.triage.domain import DEFAULT_RULE_TABLE
from src.triage.infrastructure import RuleCatalogLoader


def _write(tmp_path, data) -> Path:
    path = tmp_path / "triage_rules.yaml"
    path.write_text(data if isinstance(data, str) else yaml.safe_dump(data))
    return path


class TestRuleCatalogLoader:

    def test_missing_file_uses_built_in(self, tmp_path):
        table = RuleCatalogLoader().load(tmp_path / "absent.yaml")
        assert table is DEFAULT_RULE_TABLE

    def test_none_path_uses_built_in(self):
        assert RuleCatalogLoader().load(None) is DEFAULT_RULE_TABLE

    def test_override_one_category(self, tmp_path):
        path = _write(tmp_path, {
            "categories": {
                "ServerOS": {
                    "topic": ["Spooler", "systemd"],
                    "subtopics": [{"name": "windows", "keywords": ["spooler"]}],
                }
            }
        })

        table = RuleCatalogLoader().load(path)

        rule = table.rule_for(Category.SERVER_OS)
        assert rule.is_gated
        assert set(rule.topic) == {"spooler", "systemd"}
        assert [s.name for s in rule.subtopics] == ["windows"]
        assert table.rule_for(Category.NETWORKING) == DEFAULT_RULE_TABLE.rule_for(Category.NETWORKING)
        assert table.change_intent == DEFAULT_RULE_TABLE.change_intent
        assert table.source == str(path)

    def test_override_change_intent_and_message(self, tmp_path):
        path = _write(tmp_path, {
            "change_intent": ["execute", "roll out"],
            "approval_message": "Confirm CAB approval.",
        })
        table = RuleCatalogLoader().load(path)
        assert set(table.change_intent) == {"execute", "roll out"}
        assert table.approval_message == "Confirm CAB approval."

    def test_empty_file_uses_built_in_rules(self, tmp_path):
        table = RuleCatalogLoader().load(_write(tmp_path, ""))
        assert table.rules == DEFAULT_RULE_TABLE.rules

    @pytest.mark.parametrize("content", [
        "categories: [unclosed",
        "- just\n- a list\n",
        "categories:\n  Storage:\n    topic: [san]\n",
        "categories:\n  ServerOS:\n    subtopics:\n      - name: linux\n        keywords: [rhel]\n",
        "categories:\n  Networking:\n    topic: ['  ']\n",
        "change_intent: []\n",
        "approval_message: ''\n",
        "approval_message: '   '\n",
    ])
    def test_malformed_catalog_rejected(self, tmp_path, content):
        with pytest.raises(ConfigurationException):
            RuleCatalogLoader().load(_write(tmp_path, content))

    def test_example_catalog_restates_built_in(self):
        example = Path(__file__).parent.parent / "triage_rules.example.yaml"
        assert RuleCatalogLoader().load(example) == DEFAULT_RULE_TABLE
