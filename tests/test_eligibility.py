"""Tests for EligibilityFilter."""

import pytest

from mondaybot.config import EligibilityRule
from mondaybot.eligibility import EligibilityFilter
from mondaybot.errors import UpstreamError

RULES = [
    EligibilityRule(field="Trade", contains=["mason", "carp"]),
    EligibilityRule(field="Region", contains=["north"]),
]


class TestShouldSync:
    def setup_method(self):
        self.filter = EligibilityFilter(RULES)

    def test_substring_match_is_case_insensitive(self):
        assert self.filter.should_sync({"Trade": "MASONRY"}) is True
        assert self.filter.should_sync({"trade": "Finish Carpentry"}) is True

    def test_rules_are_or_combined(self):
        assert self.filter.should_sync({"Trade": "Electrical", "Region": "Northeast"}) is True

    def test_no_rule_matches(self):
        assert self.filter.should_sync({"Trade": "Electrical", "Region": "South"}) is False

    def test_missing_field_does_not_match(self):
        assert self.filter.should_sync({"Status": "mason"}) is False

    def test_empty_rules_sync_everything(self):
        assert EligibilityFilter([]).should_sync({}) is True

    def test_verdict_follows_field_changes(self):
        snapshot = {"Trade": "Electrical"}
        assert self.filter.should_sync(snapshot) is False

        snapshot["Trade"] = "Masonry"
        assert self.filter.should_sync(snapshot) is True

        snapshot["Trade"] = "Electrical"
        assert self.filter.should_sync(snapshot) is False


@pytest.mark.asyncio
async def test_evaluate_refetches_every_time():
    values = iter(["Electrical", "Masonry", "Electrical"])
    calls = []

    async def fetch():
        calls.append(1)
        return {"Trade": next(values)}

    eligibility = EligibilityFilter(RULES)
    results = [await eligibility.evaluate("42", fetch) for _ in range(3)]

    assert results == [False, True, False]
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_lookup_failure_fails_open():
    async def fetch():
        raise UpstreamError("monday", "get_item", "HTTP 500")

    assert await EligibilityFilter(RULES).evaluate("42", fetch) is True


@pytest.mark.asyncio
async def test_missing_item_fails_open():
    async def fetch():
        return None

    assert await EligibilityFilter(RULES).evaluate("42", fetch) is True


@pytest.mark.asyncio
async def test_fail_open_can_be_disabled():
    async def fetch():
        raise UpstreamError("monday", "get_item", "timeout")

    assert await EligibilityFilter(RULES, fail_open=False).evaluate("42", fetch) is False


@pytest.mark.asyncio
async def test_unexpected_fetch_error_fails_open():
    async def fetch():
        raise KeyError("id")

    assert await EligibilityFilter(RULES).evaluate("42", fetch) is True
    assert await EligibilityFilter(RULES, fail_open=False).evaluate("42", fetch) is False
