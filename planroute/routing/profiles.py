"""Routing profiles: the router variants expressed as configuration.

A profile bundles everything that differs between router variants:
classifier keywords and hints, complexity weights, the rule table and the
global fallback order. One Router class serves every variant.

Profiles:
    default: Provider routing by category, then multi-tool, then research.
    research: Research-provider routing. Hybrid requests get their own tag
        and everything else falls through to general research.
    synthesis: Agent-synthesis routing. A request goes to an agent only
        when it is synthesis-worthy (complexity >= 5, a complex tool
        category, more than two tools or a research operation); the agent
        is picked by category, with tool-name hints feeding the classifier.

Example:
    >>> profile = get_profile("synthesis")
    >>> profile.rules.rule_names()[0]
    'technical-agent'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional, Sequence

from planroute.core.exceptions import ConfigurationError
from planroute.routing.classifier import ClassifierProfile, normalize_text
from planroute.routing.complexity import ScoringProfile
from planroute.routing.rules import (
    Rule,
    RuleTable,
    always_rule,
    category_rule,
    operation_contains_rule,
    tool_count_rule,
)
from planroute.routing.schemas import Category, Request


logger = logging.getLogger(__name__)


# =============================================================================
# Capability Tags
# =============================================================================

TAG_TECHNICAL = "technical"
TAG_MARKET = "market"
TAG_UIUX = "uiux"
TAG_HYBRID = "hybrid"
TAG_MULTI_TOOL = "multi-tool"
TAG_GENERAL_RESEARCH = "general-research"


# =============================================================================
# Tool Categories
# =============================================================================

TOOL_CATEGORIES: dict[str, tuple[str, ...]] = {
    "technical-documentation": ("resolve-library-id", "get-library-docs"),
    "web-search": ("tavily-search", "tavily-extract"),
    "web-scraping": (
        "firecrawl_scrape", "firecrawl_map", "firecrawl_crawl",
        "firecrawl_search", "firecrawl_extract",
    ),
    "deep-research": ("firecrawl_deep_research", "tavily-search"),
    "browser-automation": (
        "browser_navigate", "browser_click", "browser_type",
        "browser_snapshot", "browser_extract",
    ),
}

# every tool category above is treated as complex
COMPLEX_TOOLS: frozenset[str] = frozenset(
    tool for tools in TOOL_CATEGORIES.values() for tool in tools
)

_TOOL_CATEGORY_TO_CATEGORY: dict[str, Category] = {
    "technical-documentation": Category.TECHNICAL,
    "web-scraping": Category.TECHNICAL,
    "web-search": Category.MARKET,
    "deep-research": Category.MARKET,
    "browser-automation": Category.UIUX,
}

SYNTHESIS_TOOL_HINTS: dict[str, Category] = {
    tool: _TOOL_CATEGORY_TO_CATEGORY[name]
    for name, tools in TOOL_CATEGORIES.items()
    for tool in tools
}

UIUX_KEYWORDS: tuple[str, ...] = ("ui", "ux", "design", "user")

SYNTHESIS_COMPLEXITY_THRESHOLD = 5


# =============================================================================
# Routing Profile
# =============================================================================


@dataclass(frozen=True)
class RoutingProfile:
    """Named bundle of classifier, scorer, rules and fallback order.

    Attributes:
        name: Profile name ('default', 'research', 'synthesis').
        classifier: Keyword sets and hint tables.
        scoring: Complexity weights.
        rules: First-match-wins rule table.
        fallback_order: Global handler fallback order. Empty means the
            registry's registration order.
    """

    name: str
    classifier: ClassifierProfile = field(default_factory=ClassifierProfile)
    scoring: ScoringProfile = field(default_factory=ScoringProfile)
    rules: RuleTable = field(default_factory=lambda: RuleTable(()))
    fallback_order: tuple[str, ...] = ()

    def with_overrides(
        self,
        fallback_order: Optional[Sequence[str]] = None,
        keywords: Optional[Mapping[str, Any]] = None,
    ) -> "RoutingProfile":
        """Return a copy with a new fallback order and/or keyword lists."""
        profile = self
        if fallback_order:
            profile = replace(profile, fallback_order=tuple(fallback_order))
        if keywords:
            profile = replace(profile, classifier=profile.classifier.with_keywords(keywords))
        return profile

    def apply_overrides(self, overrides: Mapping[str, Any]) -> "RoutingProfile":
        """Apply an external rules document.

        Accepts the camelCase keys of the router config file
        (``fallbackOrder``, ``classificationKeywords``) or their snake_case
        equivalents.

        Raises:
            ConfigurationError: If a key has the wrong shape.
        """
        fallback = overrides.get("fallbackOrder", overrides.get("fallback_order"))
        keywords = overrides.get("classificationKeywords", overrides.get("classification_keywords"))
        if fallback is not None and not (
            isinstance(fallback, list) and all(isinstance(h, str) for h in fallback)
        ):
            raise ConfigurationError(
                "fallbackOrder must be a list of handler ids",
                config_key="fallbackOrder",
            )
        if keywords is not None and not isinstance(keywords, Mapping):
            raise ConfigurationError(
                "classificationKeywords must map categories to keyword lists",
                config_key="classificationKeywords",
            )
        return self.with_overrides(fallback_order=fallback, keywords=keywords)


# =============================================================================
# Profile Builders
# =============================================================================


def default_profile() -> RoutingProfile:
    """Provider routing as described by the base rule table."""
    return RoutingProfile(
        name="default",
        rules=RuleTable([
            category_rule("technical", TAG_TECHNICAL, Category.TECHNICAL),
            category_rule("market", TAG_MARKET, Category.MARKET, Category.COMPETITIVE),
            tool_count_rule("multi-tool", TAG_MULTI_TOOL, more_than=2),
            operation_contains_rule("research", TAG_GENERAL_RESEARCH, "research"),
        ]),
    )


def research_profile() -> RoutingProfile:
    """Research-provider routing; every request reaches some provider."""
    return RoutingProfile(
        name="research",
        rules=RuleTable([
            category_rule("hybrid", TAG_HYBRID, Category.HYBRID),
            category_rule("technical", TAG_TECHNICAL, Category.TECHNICAL, Category.HYBRID),
            category_rule("market", TAG_MARKET, Category.MARKET, Category.COMPETITIVE, Category.HYBRID),
            tool_count_rule("multi-tool", TAG_MULTI_TOOL, more_than=2),
            always_rule("general-research", TAG_GENERAL_RESEARCH),
        ]),
    )


def needs_synthesis(complexity: int, request: Request) -> bool:
    """Whether a request is worth an agent synthesis round."""
    return (
        complexity >= SYNTHESIS_COMPLEXITY_THRESHOLD
        or bool(request.tools & COMPLEX_TOOLS)
        or request.tool_count > 2
        or "research" in normalize_text(request.operation_name)
    )


def _synthesis_rule(name: str, tag: str, categories: Sequence[Category]) -> Rule:
    wanted = frozenset(categories)

    def predicate(category: Category, complexity: int, request: Request) -> bool:
        return category in wanted and needs_synthesis(complexity, request)

    return Rule(
        name=name,
        tag=tag,
        predicate=predicate,
        description="synthesis-worthy and category is " + " or ".join(c.value for c in categories),
        requires_synthesis=True,
    )


def synthesis_profile() -> RoutingProfile:
    """Agent-synthesis routing."""
    base = ClassifierProfile()
    keywords = dict(base.keywords)
    keywords[Category.UIUX] = UIUX_KEYWORDS
    classifier = ClassifierProfile(
        keywords=keywords,
        stage_hints=base.stage_hints,
        focus_hints=base.focus_hints,
        tool_hints=dict(SYNTHESIS_TOOL_HINTS),
        query_fields=base.query_fields,
    )
    synthesis_check: Callable[[Category, int, Request], bool] = (
        lambda _category, complexity, request: needs_synthesis(complexity, request)
    )
    return RoutingProfile(
        name="synthesis",
        classifier=classifier,
        rules=RuleTable([
            _synthesis_rule("technical-agent", TAG_TECHNICAL, [Category.TECHNICAL, Category.HYBRID]),
            _synthesis_rule("market-agent", TAG_MARKET, [Category.MARKET, Category.COMPETITIVE]),
            _synthesis_rule("uiux-agent", TAG_UIUX, [Category.UIUX]),
            Rule(
                name="multi-tool-agent",
                tag=TAG_MULTI_TOOL,
                predicate=lambda _category, _complexity, request: request.tool_count > 2,
                description="tool count > 2",
                requires_synthesis=True,
            ),
            Rule(
                name="general-agent",
                tag=TAG_GENERAL_RESEARCH,
                predicate=synthesis_check,
                description="synthesis-worthy",
                requires_synthesis=True,
            ),
        ]),
    )


PROFILE_BUILDERS: dict[str, Callable[[], RoutingProfile]] = {
    "default": default_profile,
    "research": research_profile,
    "synthesis": synthesis_profile,
}


def get_profile(name: str) -> RoutingProfile:
    """Build a fresh profile by name.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    builder = PROFILE_BUILDERS.get(name.lower().strip())
    if builder is None:
        raise ConfigurationError(
            f"Unknown routing variant '{name}'",
            config_key="routing.variant",
            validation_details="valid variants: " + ", ".join(sorted(PROFILE_BUILDERS)),
        )
    logger.debug("Building routing profile '%s'", name)
    return builder()


__all__ = [
    "TAG_TECHNICAL",
    "TAG_MARKET",
    "TAG_UIUX",
    "TAG_HYBRID",
    "TAG_MULTI_TOOL",
    "TAG_GENERAL_RESEARCH",
    "TOOL_CATEGORIES",
    "COMPLEX_TOOLS",
    "SYNTHESIS_TOOL_HINTS",
    "UIUX_KEYWORDS",
    "RoutingProfile",
    "default_profile",
    "research_profile",
    "synthesis_profile",
    "needs_synthesis",
    "get_profile",
    "PROFILE_BUILDERS",
]
