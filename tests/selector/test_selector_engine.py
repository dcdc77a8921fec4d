"""Tests for the selector engine."""

import pytest

from browser_recorder.exceptions import SelectorSynthesisDegraded
from browser_recorder.selector import (
    STRATEGY_WEIGHTS,
    PathSegment,
    SelectorConfig,
    SelectorEngine,
    SelectorStrategy,
    TargetDescriptor,
    is_dynamic_id,
)
from browser_recorder.selector.engine import xpath_literal


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Create a selector engine."""
    return SelectorEngine()


@pytest.fixture
def submit_button(make_target):
    """Submit button carrying a test id and visible text."""
    return make_target("button", text="Sign in", data_testid="submit", type="submit")


@pytest.fixture
def plain_div(make_target):
    """Element with no attributes or text."""
    return make_target("div")


def counts(mapping):
    """Match counter backed by a selector -> count mapping."""
    return lambda selector: mapping.get(selector, 0)


# =============================================================================
# Strategy Tests
# =============================================================================


class TestStrategies:
    """Tests for the individual selector strategies."""

    def test_testid_is_primary(self, engine, submit_button):
        """Test that a data-testid attribute wins over every other strategy."""
        result = engine.synthesize(submit_button)

        assert result.primary.strategy == SelectorStrategy.TESTID
        assert result.primary.value == '[data-testid="submit"]'
        assert result.primary.reliability == STRATEGY_WEIGHTS[SelectorStrategy.TESTID]
        assert result.degraded is None

    def test_alternatives_sorted_by_reliability(self, engine, submit_button):
        """Test that alternatives are ordered by descending reliability."""
        result = engine.synthesize(submit_button)

        values = [c.value for c in result.alternatives]
        assert values == ['text="Sign in"', "html > body > form#login > button"]
        reliabilities = [c.reliability for c in result.candidates]
        assert reliabilities == sorted(reliabilities, reverse=True)

    def test_id_selector(self, engine, make_target):
        """Test id strategy for a stable id."""
        target = make_target("input", id="email", type="email")

        result = engine.synthesize(target)

        assert result.primary.value == "#email"
        assert result.primary.reliability == 0.9

    def test_non_identifier_id_uses_attribute_form(self, engine, make_target):
        """Test ids that are not CSS identifiers are quoted."""
        target = make_target("input", id="user.email")

        result = engine.synthesize(target, SelectorConfig(priority=("id",)))

        assert result.primary.value == '[id="user.email"]'

    def test_dynamic_id_is_skipped(self, engine, make_target):
        """Test that generated ids never become selectors."""
        target = make_target("input", id="ember1234", name="q")

        result = engine.synthesize(target)

        assert all("ember1234" not in c.value for c in result.candidates)

    def test_aria_label_selector(self, engine, make_target):
        """Test aria-label strategy includes the tag name."""
        target = make_target("button", aria_label="Close  dialog")

        result = engine.synthesize(target)

        assert result.primary.strategy == SelectorStrategy.ARIA
        assert result.primary.value == 'button[aria-label="Close dialog"]'

    def test_text_not_used_for_inputs(self, engine, make_target):
        """Test text strategy is skipped for form controls."""
        target = make_target("textarea", text="Some text")

        result = engine.synthesize(target, SelectorConfig(priority=("text",), fallback=False))

        assert result.is_empty

    def test_long_text_is_rejected(self, engine, make_target):
        """Test text longer than the limit is not used."""
        target = make_target("p", text="word " * 20)

        result = engine.synthesize(target, SelectorConfig(priority=("text",), fallback=False))

        assert result.is_empty

    def test_attribute_values_are_escaped(self, engine, make_target):
        """Test quotes inside attribute values are escaped."""
        target = make_target("button", data_testid='say "hi"')

        result = engine.synthesize(target)

        assert result.primary.value == '[data-testid="say \\"hi\\""]'

    def test_css_chain(self, engine, make_target):
        """Test CSS path built from ancestors."""
        target = make_target("span", **{"class": "label mt-2"})

        result = engine.synthesize(target, SelectorConfig(priority=("css",)))

        assert result.primary.value == "html > body > form#login > span.label"

    def test_css_optimized_anchors_at_stable_id(self, engine, make_target):
        """Test optimized CSS starts at the nearest ancestor with an id."""
        target = make_target("span")

        result = engine.synthesize(target, SelectorConfig(priority=("css",), optimize=True))

        assert result.primary.value == "form#login > span"

    def test_xpath_prefers_id(self, engine, make_target):
        """Test XPath strategy uses a stable id."""
        target = make_target("input", id="email")

        result = engine.synthesize(target, SelectorConfig(priority=("xpath",)))

        assert result.primary.value == '//*[@id="email"]'
        assert result.primary.reliability == 0.3

    def test_xpath_id_with_double_quote(self, engine, make_target):
        """Test an id holding a double quote is single-quoted."""
        target = make_target("input", id='user"name')

        result = engine.synthesize(target, SelectorConfig(priority=("xpath",)))

        assert result.primary.value == "//*[@id='user\"name']"

    def test_xpath_id_with_both_quotes(self, engine, make_target):
        """Test an id holding both quote kinds is spliced with concat()."""
        target = make_target("input", id="it's\"x")

        result = engine.synthesize(target, SelectorConfig(priority=("xpath",)))

        assert result.primary.value == "//*[@id=concat(\"it's\", '\"', \"x\")]"

    def test_xpath_text_with_double_quote(self, engine, make_target):
        """Test quoted button text still yields a text XPath."""
        target = make_target("button", text='Say "hi"')

        result = engine.synthesize(target, SelectorConfig(priority=("xpath",)))

        assert result.primary.value == "//button[normalize-space()='Say \"hi\"']"


class TestXpathLiteral:
    """Tests for XPath string literal quoting."""

    @pytest.mark.parametrize("value,expected", [
        ("email", '"email"'),
        ('a"b', "'a\"b'"),
        ("a'b\"c", "concat(\"a'b\", '\"', \"c\")"),
        ("'\"", "concat(\"'\", '\"')"),
    ])
    def test_xpath_literal(self, value, expected):
        """Test values are quoted so they cannot end the literal early."""
        assert xpath_literal(value) == expected

    def test_config_converts_string_priority(self):
        """Test that string strategies are converted to enums."""
        config = SelectorConfig(priority=("testid", "css"))

        assert config.priority == (SelectorStrategy.TESTID, SelectorStrategy.CSS)


# =============================================================================
# Uniqueness Tests
# =============================================================================


class TestUniqueness:
    """Tests for match-counter driven acceptance."""

    def test_non_unique_candidate_rejected(self, engine, submit_button):
        """Test that a candidate matching several elements is rejected."""
        matcher = counts({
            '[data-testid="submit"]': 2,
            'text="Sign in"': 1,
        })

        result = engine.synthesize(submit_button, matcher=matcher)

        assert result.primary.value == 'text="Sign in"'

    def test_position_disambiguates(self, engine, submit_button):
        """Test nth-child disambiguation with the position penalty."""
        matcher = counts({
            '[data-testid="submit"]': 2,
            '[data-testid="submit"]:nth-child(1)': 1,
        })

        result = engine.synthesize(
            submit_button,
            SelectorConfig(include_position=True),
            matcher=matcher,
        )

        assert result.primary.value == '[data-testid="submit"]:nth-child(1)'
        assert result.primary.reliability == pytest.approx(0.76)
        assert result.primary.positional

    def test_position_without_matcher_for_siblings(self, engine, make_target):
        """Test structural ties get a position when no matcher is given."""
        target = make_target("li", index=3, sibling_count=5)

        result = engine.synthesize(target, SelectorConfig(priority=("css",), include_position=True))

        assert result.primary.value.endswith("li:nth-child(3)")
        assert result.primary.reliability == pytest.approx(0.4)

    def test_zero_matches_rejected(self, engine, make_target):
        """Test candidates matching nothing are rejected."""
        target = make_target("input", id="email")

        result = engine.synthesize(
            target,
            SelectorConfig(priority=("id",), fallback=False),
            matcher=counts({}),
        )

        assert result.is_empty


# =============================================================================
# Degradation Tests
# =============================================================================


class TestDegradation:
    """Tests for fallback and empty results."""

    def test_positional_fallback(self, engine, plain_div):
        """Test that unaddressable elements get a structural path."""
        result = engine.synthesize(plain_div, SelectorConfig(priority=("testid", "id")))

        assert result.primary.value == "html > body > form:nth-child(1) > div:nth-child(1)"
        assert result.primary.reliability == pytest.approx(0.4)
        assert isinstance(result.degraded, SelectorSynthesisDegraded)
        assert result.degraded.reliability == pytest.approx(0.4)

    def test_no_fallback_returns_empty(self, engine, plain_div):
        """Test that disabling fallback yields an empty primary."""
        result = engine.synthesize(plain_div, SelectorConfig(priority=("testid",), fallback=False))

        assert result.is_empty
        assert result.primary.reliability == 0.0
        assert result.degraded is not None

    def test_missing_tag_never_raises(self, engine):
        """Test that a target without a tag name yields a diagnostic."""
        result = engine.synthesize(TargetDescriptor(tag_name=""))

        assert result.is_empty
        assert "no tag name" in result.degraded.message

    def test_to_dict(self, engine, plain_div):
        """Test serialization includes the degradation message."""
        data = engine.synthesize(plain_div, SelectorConfig(priority=("testid",))).to_dict()

        assert data["primary"]["positional"] is True
        assert data["alternatives"] == []
        assert data["degraded"]


# =============================================================================
# Cache Tests
# =============================================================================


class TestCache:
    """Tests for the synthesis cache."""

    def test_results_cached_without_matcher(self, engine, submit_button):
        """Test identical requests return the cached result."""
        first = engine.synthesize(submit_button)
        second = engine.synthesize(submit_button)

        assert first is second
        assert engine.cache_size == 1

    def test_matcher_bypasses_cache(self, engine, submit_button):
        """Test results computed with a matcher are not cached."""
        engine.synthesize(submit_button, matcher=counts({'[data-testid="submit"]': 1}))

        assert engine.cache_size == 0

    def test_config_is_part_of_key(self, engine, submit_button):
        """Test different configs are cached separately."""
        engine.synthesize(submit_button)
        engine.synthesize(submit_button, SelectorConfig(optimize=True))

        assert engine.cache_size == 2

    def test_invalidate(self, engine, submit_button, plain_div):
        """Test invalidating one element keeps the others."""
        engine.synthesize(submit_button)
        engine.synthesize(plain_div)

        assert engine.invalidate(submit_button) == 1
        assert engine.cache_size == 1
        assert engine.invalidate(submit_button.fingerprint()) == 0

    def test_clear_cache(self, engine, submit_button):
        """Test clearing the cache."""
        engine.synthesize(submit_button)
        engine.clear_cache()

        assert engine.cache_size == 0

    def test_deterministic(self, submit_button):
        """Test two engines produce identical results."""
        first = SelectorEngine().synthesize(submit_button)
        second = SelectorEngine().synthesize(submit_button)

        assert first.to_dict() == second.to_dict()


# =============================================================================
# Highlight and Stats Tests
# =============================================================================


class TestHighlightAndStats:
    """Tests for the highlight side channel and statistics."""

    def test_highlight_notifies_listeners(self, engine):
        """Test listeners receive highlighted selectors."""
        seen = []
        unsubscribe = engine.on_highlight(seen.append)

        engine.highlight("#email")
        engine.clear_highlight()
        unsubscribe()
        engine.highlight("#other")

        assert seen == ["#email", None]
        assert engine.highlighted == "#other"

    def test_stats(self, engine, submit_button, make_target):
        """Test running statistics over synthesized selectors."""
        engine.synthesize(submit_button)
        engine.synthesize(make_target("input", id="email"))
        engine.synthesize(TargetDescriptor(tag_name=""))

        stats = engine.stats()

        assert stats.total_generated == 3
        assert stats.unique_selectors == 2
        assert stats.degraded_count == 1
        assert stats.strategy_breakdown == {"testid": 1, "id": 1}
        assert stats.reliability_score == pytest.approx(0.925)


# =============================================================================
# Model Tests
# =============================================================================


class TestTargetDescriptor:
    """Tests for element snapshots."""

    @pytest.mark.parametrize("value,expected", [
        ("email", False),
        ("12345", True),
        (":r1:", True),
        ("ember-12", True),
        ("550e8400-e29b-41d4", True),
        ("order-24", False),
        ("order-20241", True),
    ])
    def test_is_dynamic_id(self, value, expected):
        """Test dynamic id detection."""
        assert is_dynamic_id(value) is expected

    def test_from_dict(self):
        """Test creating a snapshot from camelCase data."""
        target = TargetDescriptor.from_dict({
            "tagName": "BUTTON",
            "textContent": "Go",
            "attributes": {"id": "go"},
            "path": [{"tagName": "FORM", "attributes": {"id": "search"}}],
        })

        assert target.tag_name == "button"
        assert target.path == (PathSegment("form", {"id": "search"}),)
        assert target.form_scope() == "form#search"

    def test_form_scope_of_form(self, make_target):
        """Test a form is its own scope."""
        form = make_target("form", name="signup")

        assert form.form_scope() == 'form[name="signup"]'

    def test_no_form_scope(self):
        """Test elements outside forms have no scope."""
        assert TargetDescriptor(tag_name="a").form_scope() is None

    def test_fingerprint_stable(self, make_target):
        """Test equal snapshots share a fingerprint."""
        assert make_target("a", id="x").fingerprint() == make_target("a", id="x").fingerprint()
        assert make_target("a", id="x").fingerprint() != make_target("a", id="y").fingerprint()

    def test_input_type(self, make_target):
        """Test effective input types."""
        assert make_target("input").input_type == "text"
        assert make_target("input", type="Checkbox").input_type == "checkbox"
        assert make_target("select", multiple="").input_type == "select-multiple"
        assert make_target("div").input_type == ""
