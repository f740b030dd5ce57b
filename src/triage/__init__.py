"""
Triage Module
=============

Bounded Context for infrastructure support request triage.

Responsibilities:
- Classify requests into Networking, ServerOS, ScriptAutomation,
  HardwareComponents or Unknown
- Route them through the keyword rule table (topic gate, subtopic dispatch,
  change-intent detection)
- Produce a diagnostic narrative, and a remediation plan only after the
  approval gate says yes
"""

__version__ = "1.2.0"
