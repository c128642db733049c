"""Tests for request fingerprints."""

from __future__ import annotations

from planroute.routing.fingerprint import canonicalize, fingerprint
from planroute.routing.schemas import Request


class TestFingerprint:

    def test_tool_order_irrelevant(self):
        a = Request("op", tools=["x", "y", "z"])
        b = Request("op", tools=["z", "x", "y"])
        assert fingerprint(a) == fingerprint(b)

    def test_nested_key_order_irrelevant(self):
        a = Request("op", context={"a": 1, "b": {"c": 2, "d": [1, 2]}})
        b = Request("op", context={"b": {"d": [1, 2], "c": 2}, "a": 1})
        assert fingerprint(a) == fingerprint(b)

    def test_parameters_change_fingerprint(self):
        assert fingerprint(Request("op", parameters={"query": "a"})) != fingerprint(
            Request("op", parameters={"query": "b"})
        )

    def test_priority_changes_fingerprint(self):
        assert fingerprint(Request("op", priority="high")) != fingerprint(Request("op"))

    def test_sha256_hex(self):
        key = fingerprint(Request("get_tasks"))
        assert len(key) == 64
        int(key, 16)

    def test_context_vs_parameters_distinguished(self):
        assert fingerprint(Request("op", context={"q": 1})) != fingerprint(
            Request("op", parameters={"q": 1})
        )


class TestCanonicalize:

    def test_sets_sorted_and_tuples_listed(self):
        assert canonicalize({"s": {"b", "a"}, "t": (1, 2)}) == {"s": ["a", "b"], "t": [1, 2]}

    def test_non_json_values_stringified(self):
        class Thing:
            def __repr__(self):
                return "Thing()"

        assert canonicalize({"x": Thing()}) == {"x": "Thing()"}
