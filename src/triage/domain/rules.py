"""
Triage Rule Table
=================

Declarative routing data for the decision tree.

One row per category: an optional topic keyword gate, an ordered list of
subtopic (vendor / error-family) keyword sets, and the base action. The
change-intent set and the fixed approval message are shared by every row.
The router evaluates this table generically; nothing here executes.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from src.config import Category, VALID_CATEGORIES
from src.triage.domain.entities import KeywordSet, TriageAction


APPROVAL_MESSAGE = (
    "Change requested. Before remediation content is produced, confirm that "
    "a maintenance window is scheduled, backups have been taken and verified, "
    "and a rollback plan is documented."
)


@dataclass(frozen=True)
class RoutingRule:
    """
    Routing row for a single category.

    ``topic`` of ``None`` means the category is not gated. ``subtopics`` are
    tested in order; the first match wins, otherwise the subtopic is generic.
    """
    category: Category
    topic: Optional[KeywordSet] = None
    subtopics: Tuple[KeywordSet, ...] = ()
    leads_to: TriageAction = TriageAction.DIAGNOSE

    def __post_init__(self):
        if self.leads_to == TriageAction.TOPIC_GAP:
            raise ValueError("A routing rule cannot lead to the topic gap")
        if self.subtopics and self.topic is None:
            raise ValueError(
                f"{self.category.value}: subtopic dispatch requires a topic gate"
            )
        object.__setattr__(self, "subtopics", tuple(self.subtopics))

    @property
    def is_gated(self) -> bool:
        return self.topic is not None


@dataclass(frozen=True)
class RuleTable:
    """Complete, immutable routing table. Every category has exactly one rule."""
    rules: Mapping[Category, RoutingRule]
    change_intent: KeywordSet
    approval_message: str = APPROVAL_MESSAGE
    source: str = field(default="built-in", compare=False)

    def __post_init__(self):
        missing = [c.value for c in VALID_CATEGORIES if c not in self.rules]
        if missing:
            raise ValueError(f"Rule table missing categories: {', '.join(missing)}")
        for category, rule in self.rules.items():
            if rule.category != category:
                raise ValueError(
                    f"Rule registered under {category.value} is for {rule.category.value}"
                )
        if not self.approval_message.strip():
            raise ValueError("Approval message must be non-empty")
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def rule_for(self, category: Category) -> RoutingRule:
        return self.rules[category]


NETWORKING_TOPIC = KeywordSet.of(
    "networking-topic",
    "vlan", "trunk", "etherchannel", "lacp", "stp", "spanning-tree",
    "bgp", "ospf", "eigrp", "hsrp", "vrf", "mtu", "crc", "drops", "flap",
)

HARDWARE_TOPIC = KeywordSet.of(
    "hardware-topic",
    "psu", "power supply", "brownout", "raid", "disk", "drive", "fan",
    "thermal", "temperature", "ecc", "dimm", "memory error", "idrac", "ilo",
    "ipmi", "bmc", "firmware", "bios", "predictive failure",
)

SCRIPT_TOPIC = KeywordSet.of(
    "script-topic",
    "ansible", "playbook", "terraform", "powershell", "python", "bash",
    "yaml", "json", "traceback", "exception", "fatal:", "unreachable=",
    "exit code", "syntax error", "script",
)

CHANGE_INTENT = KeywordSet.of(
    "change-intent",
    "apply", "proceed", "go ahead", "make the change", "implement", "do it",
    "run the fix",
)


DEFAULT_RULE_TABLE = RuleTable(
    rules={
        Category.NETWORKING: RoutingRule(
            category=Category.NETWORKING,
            topic=NETWORKING_TOPIC,
            subtopics=(
                KeywordSet.of("cisco", "cisco", "ios-xe", "nx-os", "catalyst", "nexus"),
                KeywordSet.of("juniper", "juniper", "junos", "srx", "mx960"),
                KeywordSet.of("arista", "arista", "eos", "cloudvision"),
            ),
        ),
        Category.HARDWARE_COMPONENTS: RoutingRule(
            category=Category.HARDWARE_COMPONENTS,
            topic=HARDWARE_TOPIC,
            subtopics=(
                KeywordSet.of("dell", "idrac", "dell", "poweredge", "lifecycle controller"),
                KeywordSet.of("hpe", "ilo", "hpe", "proliant", "smart array"),
                KeywordSet.of("ipmi", "ipmi", "bmc", "ipmitool", "sel log"),
            ),
        ),
        Category.SCRIPT_AUTOMATION: RoutingRule(
            category=Category.SCRIPT_AUTOMATION,
            topic=SCRIPT_TOPIC,
            subtopics=(
                KeywordSet.of("traceback", "traceback", "exception", "modulenotfounderror", "stack trace"),
                KeywordSet.of("automation-run", "fatal:", "unreachable=", "failed=", "terraform"),
                KeywordSet.of("powershell", "powershell", ".ps1", "cmdlet", "executionpolicy"),
            ),
        ),
        Category.SERVER_OS: RoutingRule(category=Category.SERVER_OS),
        Category.UNKNOWN: RoutingRule(category=Category.UNKNOWN),
    },
    change_intent=CHANGE_INTENT,
)
