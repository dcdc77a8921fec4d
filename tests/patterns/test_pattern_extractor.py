"""Tests for pattern extraction and test templates."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from browser_recorder.exceptions import ParameterValidationError, RecorderError, TemplateNotFoundError
from browser_recorder.patterns import (
    EventPattern,
    PatternExtractor,
    PatternTarget,
    TemplateParameterDefinition,
    TestTemplate,
    substitute,
)
from browser_recorder.recording.models import EventType


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def extractor():
    """Create a pattern extractor with an empty library."""
    return PatternExtractor()


@pytest.fixture
def cart_events(make_event, make_target):
    """Navigate, add an item and scroll."""
    return [
        make_event("navigation", data={"url": "/products"}),
        make_event("click", make_target("button", text="Add 2 items", selector="#add-2")),
        make_event("scroll", data={"x": 0, "y": 400}),
    ]


@pytest.fixture
def cart_template(extractor, cart_events):
    """Auto-parameterized template built from the cart recording."""
    return extractor.create_template("Add to cart", cart_events, template_id="cart", tags=["shop"])


@pytest.fixture
def login_template(extractor, make_event, make_target):
    """Template with one required parameter."""
    events = [
        make_event("input", make_target("input", selector="#user", id="user"), {"value": "{{username}}"}),
    ]
    return extractor.create_template(
        "Login",
        events,
        parameters=[TemplateParameterDefinition(name="username", required=True, description="Login name")],
        template_id="login",
    )


def clicks(make_event, make_target, *selectors):
    """Click events on the given selectors."""
    return [make_event("click", make_target("button", selector=selector)) for selector in selectors]


# =============================================================================
# Extraction Tests
# =============================================================================


class TestIdentifyParameters:
    """Tests for PatternExtractor.identify_parameters."""

    def test_stable_event(self, make_event, make_target):
        """Test events with stable selectors and string data have no parameters."""
        event = make_event("input", make_target("input", selector="#email"), {"value": "a@b.com"})

        assert PatternExtractor.identify_parameters(event) == []

    @pytest.mark.parametrize("selector", ['[value="yes"]', '[id="main"]', "#item-3", "#react-select-input"])
    def test_variable_selectors(self, make_event, make_target, selector):
        """Test attribute-value selectors, digits and dynamic ids."""
        event = make_event("click", make_target("button", selector=selector))

        assert PatternExtractor.identify_parameters(event) == ["selector"]

    def test_text_with_digits(self, make_event, make_target):
        """Test text containing numbers is marked."""
        event = make_event("click", make_target("a", text="Order 42", selector=".order"))

        assert PatternExtractor.identify_parameters(event) == ["text"]

    def test_numeric_data(self, make_event):
        """Test numeric data values are marked; booleans are not."""
        event = make_event("scroll", data={"x": 0, "y": 400, "smooth": True})

        assert PatternExtractor.identify_parameters(event) == ["data.x", "data.y"]


class TestExtractPatterns:
    """Tests for PatternExtractor.extract_patterns."""

    def test_one_pattern_per_event(self, extractor, login_events):
        """Test patterns mirror the events in order."""
        patterns = extractor.extract_patterns(login_events)

        assert [p.type for p in patterns] == [
            EventType.NAVIGATION,
            EventType.INPUT,
            EventType.INPUT,
            EventType.SUBMIT,
        ]
        assert [p.target.selector for p in patterns] == ["", "#email", "#password", "#login"]
        assert patterns[1].data == {"value": "user@example.com"}
        assert all(p.parameterized == [] for p in patterns)

    def test_auto_parameterize(self, extractor, cart_events):
        """Test auto mode marks variable fields."""
        patterns = extractor.extract_patterns(cart_events, auto_parameterize=True)

        assert [p.parameterized for p in patterns] == [[], ["selector", "text"], ["data.x", "data.y"]]
        assert patterns[1].target.parameterized == ["selector", "text"]
        assert patterns[2].target.parameterized == []

    def test_data_copied(self, extractor, make_event):
        """Test patterns do not share data with events."""
        event = make_event("scroll", data={"y": 10})

        pattern = extractor.extract_patterns([event])[0]
        pattern.data["y"] = 99

        assert event.data == {"y": 10}


class TestCommonPatterns:
    """Tests for common pattern extraction and optimization."""

    def test_min_occurrences(self, extractor, make_event, make_target):
        """Test only patterns seen often enough are returned."""
        recordings = [
            clicks(make_event, make_target, "#a", "#b"),
            clicks(make_event, make_target, "#b", "#c"),
        ]

        common = extractor.extract_common_patterns(recordings)

        assert [p.target.selector for p in common] == ["#b"]

    def test_first_seen_order(self, extractor, make_event, make_target):
        """Test representatives keep first-seen order."""
        recordings = [
            clicks(make_event, make_target, "#c", "#a"),
            clicks(make_event, make_target, "#b"),
        ]

        common = extractor.extract_common_patterns(recordings, min_occurrences=1)

        assert [p.target.selector for p in common] == ["#c", "#a", "#b"]

    def test_repeats_within_recording_count(self, extractor, make_event, make_target):
        """Test repeats inside one recording count as occurrences."""
        common = extractor.extract_common_patterns([clicks(make_event, make_target, "#a", "#a")])

        assert len(common) == 1

    def test_type_is_part_of_structure(self, extractor, make_event, make_target):
        """Test the same selector with different types is distinct."""
        target = make_target("input", selector="#q")
        recordings = [[make_event("click", target), make_event("input", target, {"value": "x"})]]

        assert extractor.extract_common_patterns(recordings) == []

    def test_optimize_patterns(self, extractor, make_event, make_target):
        """Test structural repeats are dropped, keeping the first."""
        target = make_target("input", selector="#a")
        events = [
            make_event("click", target),
            make_event("input", target, {"value": "1"}),
            make_event("click", target),
            make_event("input", target, {"value": "2"}),
        ]

        optimized = PatternExtractor.optimize_patterns(extractor.extract_patterns(events))

        assert [p.type for p in optimized] == [EventType.CLICK, EventType.INPUT]
        assert optimized[1].data == {"value": "1"}


# =============================================================================
# Template Tests
# =============================================================================


class TestCreateTemplate:
    """Tests for PatternExtractor.create_template."""

    def test_fields_become_slots(self, cart_template):
        """Test marked fields are rewritten into parameter slots."""
        navigation, click, scroll = cart_template.patterns

        assert navigation.target.selector == ""
        assert navigation.data == {"url": "/products"}
        assert click.target.selector == "{{selector_1}}"
        assert click.target.text_content == "{{text_1}}"
        assert scroll.data == {"x": "{{x_2}}", "y": "{{y_2}}"}

    def test_parameter_definitions(self, cart_template):
        """Test generated definitions default to the recorded values."""
        assert [(p.name, p.type, p.default_value) for p in cart_template.parameters] == [
            ("selector_1", "selector", "#add-2"),
            ("text_1", "string", "Add 2 items"),
            ("x_2", "number", 0),
            ("y_2", "number", 400),
        ]
        assert not any(p.required for p in cart_template.parameters)

    def test_registered(self, extractor, cart_template):
        """Test created templates join the library."""
        assert extractor.get_template("cart") is cart_template
        assert cart_template.name == "Add to cart"
        assert cart_template.usage.uses == 0

    def test_generated_id(self, extractor, cart_events):
        """Test ids are generated when not given."""
        template = extractor.create_template("Cart", cart_events)

        assert template.id.startswith("template_")
        assert len(template.id) == len("template_") + 12

    def test_without_auto_parameterize(self, extractor, cart_events):
        """Test recorded values are kept verbatim."""
        template = extractor.create_template("Cart", cart_events, auto_parameterize=False)

        assert template.parameters == []
        assert template.patterns[1].target.selector == "#add-2"

    def test_optimize(self, extractor, make_event, make_target):
        """Test repeats can be dropped before parameterizing."""
        events = clicks(make_event, make_target, "#next", "#next", "#done")

        template = extractor.create_template("Wizard", events, optimize=True)

        assert [p.target.selector for p in template.patterns] == ["#next", "#done"]

    def test_extra_parameters(self, login_template):
        """Test caller definitions are declared for existing slots."""
        assert [p.name for p in login_template.parameters] == ["username"]
        assert login_template.patterns[0].data == {"value": "{{username}}"}

    @pytest.mark.parametrize("auto_parameterize", [True, False])
    def test_recorded_braces_are_literal(self, extractor, make_event, make_target, auto_parameterize):
        """Test slot-like text typed by the user is not treated as a parameter."""
        events = [make_event("input", make_target("input", selector="#name", id="name"), {"value": "{{name}}"})]

        template = extractor.create_template("Literal", events, auto_parameterize=auto_parameterize)

        assert template.parameters == []
        assert template.patterns[0].referenced_parameters() == []
        assert extractor.apply_template(template.id, {})[0].data == {"value": "{{name}}"}

    def test_recorded_braces_in_parameterized_text(self, extractor, make_event, make_target):
        """Test a parameterized field defaults to its literal recorded text."""
        events = [make_event("click", make_target("button", text="Step {{n}} of 3", selector="#next"))]

        template = extractor.create_template("Steps", events)

        assert [(p.name, p.default_value) for p in template.parameters] == [("text_0", "Step {{n}} of 3")]
        assert extractor.apply_template(template.id, {})[0].target.text_content == "Step {{n}} of 3"

    def test_undeclared_recorded_slot_with_parameters(self, extractor, make_event, make_target):
        """Test only declared slots stay substitutable."""
        events = [
            make_event("input", make_target("input", selector="#note", id="note"), {"value": "{{user}} {{other}}"}),
        ]

        template = extractor.create_template(
            "Note",
            events,
            parameters=[TemplateParameterDefinition(name="user")],
        )

        events = extractor.apply_template(template.id, {"user": "ann"})
        assert events[0].data == {"value": "ann {{other}}"}

    def test_create_from_common_patterns(self, extractor, make_event, make_target):
        """Test the first selector and text become parameters."""
        events = [
            make_event("navigation", data={"url": "https://app.example.com"}),
            make_event("click", make_target("button", text="Save", selector="#save")),
        ]

        template = extractor.create_from_common_patterns(extractor.extract_patterns(events), "Save")

        assert [(p.name, p.required, p.default_value) for p in template.parameters] == [
            ("selector", True, "#save"),
            ("text", False, "Save"),
        ]
        assert extractor.get_template(template.id) is template


class TestLibrary:
    """Tests for listing, lookup and deletion."""

    def test_unknown_template(self, extractor):
        """Test unknown ids raise."""
        with pytest.raises(TemplateNotFoundError):
            extractor.get_template("nope")

    def test_list_by_tag(self, extractor, cart_template, login_template):
        """Test listing keeps registration order and filters by tag."""
        assert extractor.list_templates() == [cart_template, login_template]
        assert extractor.list_templates(tag="shop") == [cart_template]
        assert extractor.list_templates(tag="other") == []

    def test_delete(self, extractor, cart_template):
        """Test deletion reports whether the template existed."""
        assert extractor.delete_template("cart") is True
        assert extractor.delete_template("cart") is False
        assert extractor.list_templates() == []


class TestUpdateTemplate:
    """Tests for PatternExtractor.update_template."""

    @pytest.fixture
    def dated_template(self, extractor):
        """Registered template with fixed timestamps."""
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        template = TestTemplate(
            id="dated",
            name="Dated",
            patterns=[EventPattern(type="click", target=PatternTarget(selector="#a"))],
            created_at=created,
            updated_at=created,
        )
        extractor.register_template(template)
        return template

    def test_merges_changes(self, extractor, dated_template):
        """Test changed fields are applied and the rest kept."""
        updated = extractor.update_template("dated", name="Renamed", tags=["smoke"])

        assert updated.name == "Renamed"
        assert updated.tags == ["smoke"]
        assert updated.patterns == dated_template.patterns
        assert extractor.get_template("dated") is updated

    def test_timestamps(self, extractor, dated_template):
        """Test updated_at moves forward and created_at is kept."""
        updated = extractor.update_template("dated", description="New")

        assert updated.created_at == dated_template.created_at
        assert updated.updated_at > dated_template.updated_at

    def test_new_patterns_need_declared_parameters(self, extractor, dated_template):
        """Test the merged template is revalidated."""
        patterns = [EventPattern(type="input", data={"value": "{{name}}"})]

        with pytest.raises(ValidationError):
            extractor.update_template("dated", patterns=patterns)

        assert extractor.get_template("dated") is dated_template

    def test_patterns_and_parameters_together(self, extractor, dated_template):
        """Test slots and their definitions can change in one update."""
        updated = extractor.update_template(
            "dated",
            patterns=[EventPattern(type="input", data={"value": "{{name}}"})],
            parameters=[TemplateParameterDefinition(name="name", required=True)],
        )

        assert updated.get_parameter("name").required is True
        assert extractor.apply_template("dated", {"name": "ann"})[0].data == {"value": "ann"}

    def test_identity_fields_rejected(self, extractor, dated_template):
        """Test ids and usage cannot be changed."""
        with pytest.raises(RecorderError):
            extractor.update_template("dated", id="other")

    def test_unknown_template(self, extractor):
        """Test updating an unknown template raises."""
        with pytest.raises(TemplateNotFoundError):
            extractor.update_template("nope", name="x")


# =============================================================================
# Application Tests
# =============================================================================


class TestApplyTemplate:
    """Tests for re-instantiating templates."""

    def test_required_parameter_missing(self, extractor, login_template):
        """Test omitting a required parameter names it in the error."""
        with pytest.raises(ParameterValidationError) as exc_info:
            extractor.apply_template("login", {})

        assert exc_info.value.missing_parameters == ["username"]
        assert exc_info.value.errors == ["Required parameter missing: username"]
        assert "username" in str(exc_info.value)

    def test_parameters_substituted(self, extractor, login_template):
        """Test slots take the supplied values."""
        events = extractor.apply_template("login", {"username": "ann"})

        assert len(events) == 1
        assert events[0].data == {"value": "ann"}
        assert events[0].target.selector == "#user"
        assert events[0].target.tag_name == "input"

    def test_ids_and_timestamps(self, extractor, cart_template):
        """Test events get deterministic ids and fixed spacing."""
        events = extractor.apply_template("cart", {}, start_timestamp=5000)

        assert [e.id for e in events] == ["cart_evt_0", "cart_evt_1", "cart_evt_2"]
        assert [e.sequence for e in events] == [0, 1, 2]
        assert [e.timestamp for e in events] == [5000, 6000, 7000]
        assert all(e.metadata == {"template_id": "cart", "annotations": []} for e in events)

    def test_defaults_keep_types(self, extractor, cart_template):
        """Test omitted parameters fall back to their recorded values."""
        events = extractor.apply_template("cart", {"y_2": 900})

        assert events[1].target.selector == "#add-2"
        assert events[1].target.text_content == "Add 2 items"
        assert events[2].data == {"x": 0, "y": 900}

    def test_base_url(self, extractor, cart_template):
        """Test relative navigations resolve against the base URL."""
        events = extractor.apply_template(
            "cart",
            {"selector_1": "#add-3"},
            base_url="https://shop.example.com",
        )

        assert events[0].data == {"url": "https://shop.example.com/products"}
        assert events[0].target.tag_name == "document"
        assert [e.context.url for e in events] == ["https://shop.example.com/products"] * 3
        assert events[1].target.selector == "#add-3"

    def test_usage_recorded(self, extractor, cart_template):
        """Test each application is counted."""
        extractor.apply_template("cart", {})
        extractor.apply_template("cart", {})

        usage = extractor.get_template("cart").usage
        assert usage.uses == 2
        assert usage.last_used is not None

    def test_unknown_and_mistyped(self, extractor, cart_template):
        """Test every problem is reported together."""
        with pytest.raises(ParameterValidationError) as exc_info:
            extractor.apply_template("cart", {"extra": 1, "y_2": True, "text_1": 5})

        assert exc_info.value.invalid_parameters == ["extra", "y_2", "text_1"]
        assert exc_info.value.errors == [
            "Unknown parameter: extra",
            "Invalid type for parameter y_2. Expected number",
            "Invalid type for parameter text_1. Expected string",
        ]
        assert exc_info.value.missing_parameters == []

    def test_blank_selector_rejected(self, extractor, cart_template):
        """Test selector parameters must not be blank."""
        with pytest.raises(ParameterValidationError):
            extractor.apply_template("cart", {"selector_1": "  "})

    def test_unknown_template(self, extractor):
        """Test applying an unknown template raises."""
        with pytest.raises(TemplateNotFoundError):
            extractor.apply_template("nope", {})


class TestSubstitute:
    """Tests for parameter slot substitution."""

    def test_whole_slot_keeps_type(self):
        """Test a value that is one slot takes the parameter's type."""
        assert substitute("{{count}}", {"count": 3}) == 3
        assert substitute("{{ flag }}", {"flag": True}) is True

    def test_embedded_slot_is_textual(self):
        """Test slots inside text are formatted."""
        assert substitute("Buy {{count}} items", {"count": 3}) == "Buy 3 items"
        assert substitute("on={{flag}}", {"flag": False}) == "on=false"

    def test_missing_values_empty(self):
        """Test slots without values become empty."""
        assert substitute("{{missing}}", {}) == ""
        assert substitute("a {{missing}} b", {}) == "a  b"

    def test_nested_values(self):
        """Test dicts and lists are substituted recursively."""
        assert substitute({"a": ["{{x}}", 1], "b": "{{y}}!"}, {"x": 2, "y": "hi"}) == {"a": [2, 1], "b": "hi!"}

    def test_escaped_slot_is_literal(self):
        """Test escaped slots are emitted as plain text."""
        assert substitute("\\{{name}} and {{x}}", {"name": "a", "x": 1}) == "{{name}} and 1"
        assert substitute("\\{{name}}", {"name": "a"}) == "{{name}}"


# =============================================================================
# Analysis Tests
# =============================================================================


class TestSimilarity:
    """Tests for template similarity."""

    def test_both_empty(self):
        """Test empty sequences are identical."""
        assert PatternExtractor.similarity([], []) == 1.0

    def test_identical(self):
        """Test identical sequences score 1."""
        keys = [("click", "#a"), ("input", "#b")]

        assert PatternExtractor.similarity(keys, list(keys)) == 1.0

    def test_disjoint(self):
        """Test sequences without common patterns score 0."""
        assert PatternExtractor.similarity([("click", "#a")], [("click", "#b")]) == 0.0

    def test_partial_overlap(self):
        """Test the Jaccard index and sequence ratio are averaged."""
        similarity = PatternExtractor.similarity([("click", "#a"), ("click", "#b")], [("click", "#a")])

        assert similarity == 0.5833

    def test_order_matters(self):
        """Test reordering lowers the score through the sequence ratio."""
        keys = [("click", "#a"), ("click", "#b")]

        assert PatternExtractor.similarity(keys, keys[::-1]) == 0.75

    def test_find_similar_templates(self, extractor, make_event, make_target):
        """Test similar templates are ranked and the template itself excluded."""
        first = extractor.create_template("A", clicks(make_event, make_target, "#a", "#b"), auto_parameterize=False)
        twin = extractor.create_template("B", clicks(make_event, make_target, "#a", "#b"), auto_parameterize=False)
        partial = extractor.create_template("C", clicks(make_event, make_target, "#a"), auto_parameterize=False)
        extractor.create_template("D", clicks(make_event, make_target, "#z"), auto_parameterize=False)

        similar = extractor.find_similar_templates(first.id, threshold=0.5)

        assert [(t.id, s) for t, s in similar] == [(twin.id, 1.0), (partial.id, 0.5833)]


class TestAnalyzeTemplate:
    """Tests for PatternExtractor.analyze_template."""

    def test_simple(self, extractor, login_template):
        """Test a one-step template is simple."""
        analysis = extractor.analyze_template("login")

        assert analysis.complexity == "simple"
        assert analysis.event_count == 1
        assert analysis.parameter_count == 1
        assert analysis.estimated_duration_ms == 1000

    def test_medium(self, extractor, cart_template):
        """Test parameter count raises complexity."""
        analysis = extractor.analyze_template("cart")

        assert analysis.complexity == "medium"
        assert analysis.unique_event_types == ["navigation", "click", "scroll"]
        assert analysis.parameter_count == 4
        assert analysis.parameterized_fields == 4
        assert analysis.estimated_duration_ms == 3000

    def test_complex(self, extractor, make_event, make_target):
        """Test long templates are complex."""
        template = extractor.create_template("Long", clicks(make_event, make_target, *["#go"] * 15))

        analysis = extractor.analyze_template(template.id)

        assert analysis.complexity == "complex"
        assert analysis.unique_event_types == ["click"]


# =============================================================================
# Model Tests
# =============================================================================


class TestTestTemplateModel:
    """Tests for TestTemplate validation."""

    def test_duplicate_parameter_names(self):
        """Test parameter names must be unique."""
        with pytest.raises(ValidationError, match="Duplicate parameter names"):
            TestTemplate(
                id="t",
                name="T",
                patterns=[EventPattern(type="click")],
                parameters=[TemplateParameterDefinition(name="a"), TemplateParameterDefinition(name="a")],
            )

    def test_undeclared_parameters(self):
        """Test every slot must be declared."""
        pattern = EventPattern(type="click", target=PatternTarget(selector="{{sel}}"))

        with pytest.raises(ValidationError, match="Undeclared parameters"):
            TestTemplate(id="t", name="T", patterns=[pattern])

    def test_slots_in_data_checked(self):
        """Test slots inside data are found."""
        pattern = EventPattern(type="input", data={"value": "{{name}}"})

        with pytest.raises(ValidationError, match="Undeclared parameters"):
            TestTemplate(id="t", name="T", patterns=[pattern])

    def test_requires_patterns(self):
        """Test templates need at least one pattern."""
        with pytest.raises(ValidationError):
            TestTemplate(id="t", name="T", patterns=[])

    def test_parameter_name_must_be_identifier(self):
        """Test parameter names are usable in slots."""
        with pytest.raises(ValidationError, match="Invalid parameter name"):
            TemplateParameterDefinition(name="1st value")

    def test_get_parameter(self):
        """Test parameter lookup by name."""
        template = TestTemplate(
            id="t",
            name="T",
            patterns=[EventPattern(type="input", data={"value": "{{name}}"})],
            parameters=[TemplateParameterDefinition(name="name", required=True)],
        )

        assert template.get_parameter("name").required is True
        assert template.get_parameter("other") is None
