"""Request classification for the planroute routing engine.

The classifier maps a Request to a Category using fixed keyword sets matched
against the operation name and the request's free-text query fields. It is
deterministic, side-effect free and never raises: anything it cannot place
resolves to Category.GENERAL.

Precedence:
    1. Keywords, checked in the profile's category order (technical, market,
       competitive, then any extra categories). Technical and market signals
       together classify as HYBRID.
    2. ``context.stage`` workflow hint (e.g. 'market_research' -> MARKET).
    3. ``context.focus`` hint (e.g. 'competitive' -> COMPETITIVE).
    4. Tool-name hints (only profiles that define them).
    5. GENERAL.

Example:
    >>> classifier = CategoryClassifier()
    >>> classifier.classify(Request("validate_api_architecture"))
    <Category.TECHNICAL: 'technical'>
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from planroute.routing.schemas import Category, Request


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Keyword Tables
# =============================================================================

TECHNICAL_KEYWORDS: tuple[str, ...] = (
    "framework", "library", "api", "database", "architecture",
    "implementation", "code", "development", "programming",
    "technology", "technical", "stack", "platform", "infrastructure",
    "performance", "optimization", "security", "testing",
)

MARKET_KEYWORDS: tuple[str, ...] = (
    "market", "business", "revenue", "customer", "pricing",
    "monetization", "industry", "trend", "opportunity", "demand",
    "segment",
)

COMPETITIVE_KEYWORDS: tuple[str, ...] = (
    "competitor", "competitive", "competition", "rival", "alternative",
)

DEFAULT_STAGE_HINTS: dict[str, Category] = {
    "technical_feasibility": Category.TECHNICAL,
    "market_research": Category.MARKET,
}

DEFAULT_FOCUS_HINTS: dict[str, Category] = {
    "technical": Category.TECHNICAL,
    "market": Category.MARKET,
    "competitive": Category.COMPETITIVE,
    "competitors": Category.COMPETITIVE,
}

DEFAULT_QUERY_FIELDS: tuple[str, ...] = (
    "parameters.query",
    "parameters.prompt",
    "context.query",
)

_NON_WORD = re.compile(r"[^a-z0-9]+")


# =============================================================================
# Classifier Profile
# =============================================================================


@dataclass(frozen=True)
class ClassifierProfile:
    """Keyword sets and hint tables that drive classification.

    Attributes:
        keywords: Category -> keywords, in evaluation priority order.
        stage_hints: Normalized ``context.stage`` value -> Category.
        focus_hints: Normalized ``context.focus`` value -> Category.
        tool_hints: Tool name -> Category, used when nothing else matched.
        query_fields: Dotted paths of free-text fields scanned with the
            operation name.
    """

    keywords: Mapping[Category, tuple[str, ...]] = field(
        default_factory=lambda: {
            Category.TECHNICAL: TECHNICAL_KEYWORDS,
            Category.MARKET: MARKET_KEYWORDS,
            Category.COMPETITIVE: COMPETITIVE_KEYWORDS,
        }
    )
    stage_hints: Mapping[str, Category] = field(default_factory=lambda: dict(DEFAULT_STAGE_HINTS))
    focus_hints: Mapping[str, Category] = field(default_factory=lambda: dict(DEFAULT_FOCUS_HINTS))
    tool_hints: Mapping[str, Category] = field(default_factory=dict)
    query_fields: tuple[str, ...] = DEFAULT_QUERY_FIELDS

    def with_keywords(self, overrides: Mapping[str, Any]) -> "ClassifierProfile":
        """Return a copy whose keyword lists are replaced by ``overrides``.

        Args:
            overrides: Category value -> list of keywords. Unknown category
                names are ignored.
        """
        keywords = dict(self.keywords)
        for name, words in overrides.items():
            try:
                category = Category(str(name).lower())
            except ValueError:
                logger.warning("Ignoring keyword override for unknown category '%s'", name)
                continue
            keywords[category] = tuple(str(w).lower() for w in words)
        return ClassifierProfile(
            keywords=keywords,
            stage_hints=self.stage_hints,
            focus_hints=self.focus_hints,
            tool_hints=self.tool_hints,
            query_fields=self.query_fields,
        )


# =============================================================================
# Classification Result
# =============================================================================


@dataclass
class ClassificationResult:
    """Category together with the signals that produced it.

    Attributes:
        category: Final category.
        source: Which rule decided ('keywords', 'stage', 'focus', 'tools', 'default').
        matches: Category value -> keywords that matched.
    """

    category: Category
    source: str
    matches: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "source": self.source,
            "matches": self.matches,
        }


# =============================================================================
# Category Classifier
# =============================================================================


def normalize_text(text: str) -> str:
    """Lowercase and turn punctuation and underscores into single spaces."""
    return _NON_WORD.sub(" ", text.lower()).strip()


def _normalize_hint(value: Any) -> str:
    return str(value).lower().strip().replace("-", "_").replace(" ", "_")


class CategoryClassifier:
    """Classifies requests into categories using keyword matching.

    Keywords match at word starts, so 'competitor' also matches
    'competitors' while 'api' does not match inside 'capital'.

    Attributes:
        profile: The ClassifierProfile in use.
    """

    def __init__(self, profile: Optional[ClassifierProfile] = None) -> None:
        """Initialize the classifier and compile keyword patterns.

        Args:
            profile: Keyword and hint tables. Defaults to ClassifierProfile().
        """
        self.profile = profile or ClassifierProfile()
        self._compiled_patterns: dict[Category, list[tuple[str, re.Pattern]]] = {}
        for category, keywords in self.profile.keywords.items():
            self._compiled_patterns[category] = [
                (kw, re.compile(rf"\b{re.escape(normalize_text(kw))}"))
                for kw in keywords
                if normalize_text(kw)
            ]

    def classify(self, request: Request) -> Category:
        """Classify a request into a category.

        Args:
            request: The request to classify.

        Returns:
            The request category. Never raises; defaults to GENERAL.
        """
        return self.explain(request).category

    def explain(self, request: Request) -> ClassificationResult:
        """Classify a request and report the signals behind the answer.

        Args:
            request: The request to classify.

        Returns:
            ClassificationResult with the category, deciding source and
            matched keywords.
        """
        text = self._request_text(request)
        matches: dict[str, list[str]] = {}
        for category, patterns in self._compiled_patterns.items():
            found = [kw for kw, pattern in patterns if pattern.search(text)]
            if found:
                matches[category.value] = found

        if matches:
            technical = Category.TECHNICAL.value in matches
            market = Category.MARKET.value in matches
            if technical and market:
                category = Category.HYBRID
            else:
                # first category in profile order wins
                category = next(
                    c for c in self._compiled_patterns if c.value in matches
                )
            logger.debug(
                "Classified '%s' as %s from keywords %s",
                request.operation_name, category.value, matches,
            )
            return ClassificationResult(category=category, source="keywords", matches=matches)

        stage = request.context.get("stage")
        if stage:
            hinted = self.profile.stage_hints.get(_normalize_hint(stage))
            if hinted is not None:
                logger.debug("Classified '%s' as %s from stage", request.operation_name, hinted.value)
                return ClassificationResult(category=hinted, source="stage")

        focus = request.context.get("focus")
        if focus:
            hinted = self.profile.focus_hints.get(_normalize_hint(focus))
            if hinted is not None:
                logger.debug("Classified '%s' as %s from focus", request.operation_name, hinted.value)
                return ClassificationResult(category=hinted, source="focus")

        if self.profile.tool_hints and request.tools:
            hinted_categories = {
                self.profile.tool_hints[t] for t in request.tools if t in self.profile.tool_hints
            }
            if len(hinted_categories) == 1:
                hinted = hinted_categories.pop()
                logger.debug("Classified '%s' as %s from tools", request.operation_name, hinted.value)
                return ClassificationResult(category=hinted, source="tools")
            if len(hinted_categories) > 1:
                logger.debug(
                    "Conflicting tool hints for '%s': %s",
                    request.operation_name, sorted(c.value for c in hinted_categories),
                )

        logger.debug("No category signals for '%s', defaulting to general", request.operation_name)
        return ClassificationResult(category=Category.GENERAL, source="default")

    def _request_text(self, request: Request) -> str:
        parts = [request.operation_name]
        for path in self.profile.query_fields:
            scope, _, key = path.partition(".")
            source = request.parameters if scope == "parameters" else request.context
            value = source.get(key)
            if isinstance(value, str):
                parts.append(value)
        return normalize_text(" ".join(parts))


__all__ = [
    "TECHNICAL_KEYWORDS",
    "MARKET_KEYWORDS",
    "COMPETITIVE_KEYWORDS",
    "ClassifierProfile",
    "ClassificationResult",
    "CategoryClassifier",
    "normalize_text",
]
