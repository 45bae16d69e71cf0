"""
Rule framework and rule implementations.
Extensible plugin-style architecture for closure audit stages.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from dataclasses import dataclass

from .aggregate import AggregatedTotals
from .findings import Finding
from .reconcile import reconcile_closure
from .schemas import SummaryRecord, SystemEventRecord, TicketRecord
from .sequence import analyze_sequence
from .syntax import validate_syntax

logger = logging.getLogger(__name__)


@dataclass
class RuleContext:
    """
    Context object passed to rules containing all parsed records of a batch.

    Tickets are sorted by ticket number before the context is built.
    """
    run_id: str
    tickets: List[TicketRecord]
    summary: SummaryRecord
    aggregated: AggregatedTotals
    day_open: Optional[SystemEventRecord] = None
    day_close: Optional[SystemEventRecord] = None


class Rule(ABC):
    """
    Abstract base class for audit rules.

    Each rule has a unique ID, name, and evaluation logic.
    Rules are deterministic and produce Finding objects.
    """

    @property
    @abstractmethod
    def rule_id(self) -> str:
        """Unique identifier for this rule."""
        pass

    @property
    @abstractmethod
    def rule_name(self) -> str:
        """Human-readable name for this rule."""
        pass

    @abstractmethod
    def check(self, context: RuleContext) -> List[Finding]:
        """Run the rule and return its findings in check order."""
        pass

    def evaluate(self, context: RuleContext) -> List[Finding]:
        """Run the rule and tag every finding with this rule's stage."""
        findings = self.check(context)
        for finding in findings:
            finding.stage = self.rule_id
        return findings


class SyntaxSemanticRule(Rule):
    """Field shape, mandatory fields and line structure of every ticket file."""

    @property
    def rule_id(self) -> str:
        return "SYNTAX"

    @property
    def rule_name(self) -> str:
        return "Syntax & Semantic Validation"

    def check(self, context: RuleContext) -> List[Finding]:
        return validate_syntax(context.tickets)


class CoherenceRule(Rule):
    """Aggregated tickets vs closure summary and day markers."""

    @property
    def rule_id(self) -> str:
        return "COHERENCE"

    @property
    def rule_name(self) -> str:
        return "Closure Coherence Reconciliation"

    def check(self, context: RuleContext) -> List[Finding]:
        return reconcile_closure(
            context.aggregated,
            context.summary,
            context.day_open,
            context.day_close,
            context.tickets,
        )


class SequenceTimingRule(Rule):
    """Ticket numbering gaps, duplicates and time inversions."""

    @property
    def rule_id(self) -> str:
        return "SEQUENCE"

    @property
    def rule_name(self) -> str:
        return "Ticket Sequence & Timing"

    def check(self, context: RuleContext) -> List[Finding]:
        return analyze_sequence(context.tickets)


class RuleRegistry:
    """
    Central registry for audit rules.

    Adding a new rule:
    1. Create a Rule subclass
    2. Register it here
    3. No other code changes needed
    """

    def __init__(self):
        self._rules: List[Rule] = []

    def register(self, rule: Rule):
        """Register a rule."""
        self._rules.append(rule)

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        """Get rule by ID."""
        for rule in self._rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def evaluate_all(self, context: RuleContext) -> List[Finding]:
        """Evaluate all registered rules in registration order."""
        all_findings = []
        for rule in self._rules:
            findings = rule.evaluate(context)
            logger.info(f"[RULES] {context.run_id} {rule.rule_name}: {len(findings)} findings")
            all_findings.extend(findings)
        return all_findings


# Create global registry and register the pipeline stages
default_registry = RuleRegistry()
default_registry.register(SyntaxSemanticRule())
default_registry.register(CoherenceRule())
default_registry.register(SequenceTimingRule())
