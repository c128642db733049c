"""Tests for the rule table and routing profiles.

Test Coverage:
- First match wins
- Rules whose tag has no handler are skipped with a note
- Default, research and synthesis profiles
- External overrides (fallbackOrder, classificationKeywords)
"""

from __future__ import annotations

import pytest

from planroute.core.exceptions import ConfigurationError
from planroute.handlers.registry import HandlerRegistry
from planroute.routing.classifier import CategoryClassifier
from planroute.routing.complexity import ComplexityScorer
from planroute.routing.profiles import (
    default_profile,
    get_profile,
    needs_synthesis,
    research_profile,
    synthesis_profile,
)
from planroute.routing.rules import RuleTable, always_rule, category_rule, tool_count_rule
from planroute.routing.schemas import Category, Request


def _select(profile, request, registry):
    category = CategoryClassifier(profile.classifier).classify(request)
    complexity = ComplexityScorer(profile.scoring).score(request)
    return profile.rules.select(category, complexity, request, registry)


# =============================================================================
# Test: Rule Table
# =============================================================================


class TestRuleTable:

    def test_first_match_wins(self, registry):
        table = RuleTable([
            category_rule("technical", "technical", Category.TECHNICAL),
            tool_count_rule("multi-tool", "multi-tool", more_than=2),
        ])
        request = Request("validate_api", tools=["a", "b", "c"])
        selection = table.select(Category.TECHNICAL, 3, request, registry)
        assert selection.rule.name == "technical"
        assert selection.handler_id == "tech-docs"

    def test_unserved_tag_skipped(self, make_handler):
        registry = HandlerRegistry([make_handler("fallback", {"general-research"})])
        table = RuleTable([
            category_rule("market", "market", Category.MARKET),
            always_rule("general", "general-research"),
        ])
        selection = table.select(Category.MARKET, 2, Request("op"), registry)
        assert selection.handler_id == "fallback"
        assert "no handler registered for tag 'market'" in selection.reasoning()

    def test_no_match_is_direct_path(self, registry):
        table = RuleTable([category_rule("market", "market", Category.MARKET)])
        selection = table.select(Category.GENERAL, 1, Request("op"), registry)
        assert not selection.matched
        assert selection.handler_id is None
        assert "direct path" in selection.reasoning()

    def test_duplicate_rule_names_rejected(self):
        with pytest.raises(ValueError):
            RuleTable([always_rule("a", "x"), always_rule("a", "y")])


# =============================================================================
# Test: Default Profile
# =============================================================================


class TestDefaultProfile:

    def test_market_scenario(self, registry):
        request = Request(
            "research_market_opportunity",
            tools=["tavily-search"],
            context={"stage": "market_research"},
            parameters={"query": "X"},
        )
        assert _select(default_profile(), request, registry).handler_id == "market-provider"

    def test_competitive_routes_to_market(self, registry):
        assert _select(default_profile(), Request("list_competitors"), registry).handler_id == "market-provider"

    def test_many_tools_route_to_multi_tool(self, registry):
        request = Request("run_pipeline", tools=["a", "b", "c", "d"])
        selection = _select(default_profile(), request, registry)
        assert selection.rule.name == "multi-tool"
        assert selection.handler_id == "multi-tool-agent"

    def test_research_operation_routes_to_general_research(self, registry):
        selection = _select(default_profile(), Request("research_topic"), registry)
        assert selection.handler_id == "general-research"

    def test_simple_operation_direct(self, registry):
        assert not _select(default_profile(), Request("get_tasks"), registry).matched


# =============================================================================
# Test: Research and Synthesis Profiles
# =============================================================================


class TestResearchProfile:

    def test_everything_reaches_a_provider(self, registry):
        assert _select(research_profile(), Request("get_tasks"), registry).handler_id == "general-research"

    def test_hybrid_without_hybrid_handler_uses_technical(self, registry):
        selection = _select(research_profile(), Request("evaluate_stack_for_market"), registry)
        assert selection.handler_id == "tech-docs"
        assert "tag 'hybrid'" in selection.reasoning()

    def test_hybrid_handler_preferred(self, make_handler):
        registry = HandlerRegistry([
            make_handler("tech-docs", {"technical"}),
            make_handler("perplexity", {"hybrid"}),
        ])
        selection = _select(research_profile(), Request("evaluate_stack_for_market"), registry)
        assert selection.handler_id == "perplexity"


class TestSynthesisProfile:

    @pytest.fixture
    def agents(self, make_handler):
        return HandlerRegistry([
            make_handler("technicalAgent", {"technical"}),
            make_handler("marketAgent", {"market"}),
            make_handler("uiuxAgent", {"uiux"}),
            make_handler("generalAgent", {"general-research", "multi-tool"}),
        ])

    def test_simple_operation_stays_direct(self, agents):
        selection = _select(synthesis_profile(), Request("get_library_docs"), agents)
        assert not selection.matched

    def test_complex_tool_category_picks_agent_by_tool(self, agents):
        request = Request("fetch", tools=["browser_navigate"])
        selection = _select(synthesis_profile(), request, agents)
        assert selection.handler_id == "uiuxAgent"
        assert selection.rule.requires_synthesis

    def test_research_operation_goes_to_general_agent(self, agents):
        selection = _select(synthesis_profile(), Request("research_topic"), agents)
        assert selection.handler_id == "generalAgent"

    def test_market_research(self, agents):
        selection = _select(synthesis_profile(), Request("research_market_opportunity"), agents)
        assert selection.handler_id == "marketAgent"

    def test_needs_synthesis(self):
        assert needs_synthesis(5, Request("op"))
        assert needs_synthesis(1, Request("op", tools=["tavily-search"]))
        assert needs_synthesis(1, Request("op", tools=["a", "b", "c"]))
        assert not needs_synthesis(4, Request("op", tools=["a"]))


# =============================================================================
# Test: Overrides and Lookup
# =============================================================================


class TestProfileOverrides:

    def test_get_profile_by_name(self):
        assert get_profile("Research").name == "research"

    def test_unknown_profile(self):
        with pytest.raises(ConfigurationError) as exc_info:
            get_profile("turbo")
        assert exc_info.value.code == "CONFIG_ERROR"

    def test_apply_overrides(self):
        profile = default_profile().apply_overrides({
            "fallbackOrder": ["tavily", "context7"],
            "classificationKeywords": {"market": ["tam"]},
        })
        assert profile.fallback_order == ("tavily", "context7")
        classifier = CategoryClassifier(profile.classifier)
        assert classifier.classify(Request("estimate_tam")) == Category.MARKET
        assert classifier.classify(Request("estimate_revenue")) == Category.GENERAL

    def test_bad_fallback_order_rejected(self):
        with pytest.raises(ConfigurationError):
            default_profile().apply_overrides({"fallbackOrder": "tavily"})
