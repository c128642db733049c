"""Rule table for the planroute routing engine.

A rule table is an ordered list of (predicate, capability tag) pairs. The
first rule whose predicate holds AND whose tag has at least one registered
handler wins. Rules with an unserved tag are skipped and noted in the
decision reasoning. When no rule wins the request takes the direct path.

Example:
    >>> table = RuleTable([
    ...     category_rule("technical", "technical", Category.TECHNICAL),
    ...     tool_count_rule("multi-tool", "multi-tool", more_than=2),
    ... ])
    >>> selection = table.select(Category.TECHNICAL, 3, request, registry)
    >>> selection.handler_id
    'tech-docs'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from planroute.routing.classifier import normalize_text
from planroute.routing.schemas import Category, Request

if TYPE_CHECKING:
    from planroute.handlers.registry import HandlerRegistry


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


RulePredicate = Callable[[Category, int, Request], bool]


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """One row of the rule table.

    Attributes:
        name: Stable rule name, reported in decisions.
        tag: Capability tag the rule routes to.
        predicate: Callable of (category, complexity, request).
        description: Human-readable condition, used in reasoning.
        requires_synthesis: Marks decisions that need a synthesis agent.
    """

    name: str
    tag: str
    predicate: RulePredicate
    description: str = ""
    requires_synthesis: bool = False

    def matches(self, category: Category, complexity: int, request: Request) -> bool:
        return bool(self.predicate(category, complexity, request))


def category_rule(name: str, tag: str, *categories: Category, **kwargs) -> Rule:
    """Rule matching any of ``categories``."""
    wanted = frozenset(categories)
    return Rule(
        name=name,
        tag=tag,
        predicate=lambda category, _complexity, _request: category in wanted,
        description="category is " + " or ".join(c.value for c in categories),
        **kwargs,
    )


def tool_count_rule(name: str, tag: str, more_than: int, **kwargs) -> Rule:
    """Rule matching requests with more than ``more_than`` tools."""
    return Rule(
        name=name,
        tag=tag,
        predicate=lambda _category, _complexity, request: request.tool_count > more_than,
        description=f"tool count > {more_than}",
        **kwargs,
    )


def operation_contains_rule(name: str, tag: str, word: str, **kwargs) -> Rule:
    """Rule matching when the normalized operation name contains ``word``."""
    needle = normalize_text(word)
    return Rule(
        name=name,
        tag=tag,
        predicate=lambda _category, _complexity, request: needle in normalize_text(request.operation_name),
        description=f"operation contains '{word}'",
        **kwargs,
    )


def always_rule(name: str, tag: str, **kwargs) -> Rule:
    """Catch-all rule."""
    return Rule(
        name=name,
        tag=tag,
        predicate=lambda _category, _complexity, _request: True,
        description="always",
        **kwargs,
    )


# =============================================================================
# Rule Selection
# =============================================================================


@dataclass
class RuleSelection:
    """Result of evaluating a rule table against one request.

    Attributes:
        rule: Winning rule, or None for the direct path.
        handler_id: First registered handler serving the rule's tag.
        skipped: Notes for rules that matched but had no handler.
    """

    rule: Optional[Rule] = None
    handler_id: Optional[str] = None
    skipped: list[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.rule is not None

    def reasoning(self) -> str:
        notes = list(self.skipped)
        if self.rule is None:
            notes.append("no rule selected a handler; using direct path")
        else:
            notes.append(
                f"rule '{self.rule.name}' ({self.rule.description}) -> "
                f"tag '{self.rule.tag}' -> handler '{self.handler_id}'"
            )
        return "; ".join(notes)


class RuleTable:
    """Ordered, first-match-wins rule list."""

    def __init__(self, rules: Iterable[Rule]) -> None:
        self._rules = tuple(rules)
        names = [r.name for r in self._rules]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate rule names in table: {names}")

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def rule_names(self) -> list[str]:
        return [r.name for r in self._rules]

    def select(
        self,
        category: Category,
        complexity: int,
        request: Request,
        registry: "HandlerRegistry",
    ) -> RuleSelection:
        """Evaluate the table.

        Args:
            category: Classified category.
            complexity: Complexity score.
            request: The request being routed.
            registry: Registry used to resolve tags to handlers.

        Returns:
            RuleSelection naming the winning rule and primary handler, or
            an empty selection for the direct path.
        """
        selection = RuleSelection()
        for rule in self._rules:
            if not rule.matches(category, complexity, request):
                continue
            handlers = registry.find(rule.tag)
            if not handlers:
                logger.debug(
                    "Rule '%s' matched '%s' but no handler serves tag '%s'",
                    rule.name, request.operation_name, rule.tag,
                )
                selection.skipped.append(
                    f"rule '{rule.name}' skipped: no handler registered for tag '{rule.tag}'"
                )
                continue
            selection.rule = rule
            selection.handler_id = handlers[0].handler_id
            return selection
        return selection

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


__all__ = [
    "Rule",
    "RulePredicate",
    "RuleSelection",
    "RuleTable",
    "category_rule",
    "tool_count_rule",
    "operation_contains_rule",
    "always_rule",
]
