"""Tests for manual override merging."""

from roadmap_status.models import (
    Item,
    ManualItem,
    ManualOverride,
    ManualWeekState,
    OverrideEntry,
    Week,
)
from roadmap_status.overrides import (
    apply_manual_overrides,
    derive_item_key,
    derive_week_key,
    sanitize_manual_state,
)


def sample_week() -> Week:
    return Week(
        id="w1",
        title="Week 1",
        items=(
            Item(id="a", name="Alpha", manual=True),
            Item(id="b", name="Beta", manual=True, done=False),
            Item(id="c", name="Gamma", manual=True),
        ),
    )


class TestSanitizeManualState:
    def test_drops_malformed_entries(self):
        state = sanitize_manual_state(
            {
                "w1": {
                    "removed": [" a ", "", 3],
                    "overrides": [
                        {"key": "b", "done": True},
                        {"key": "", "done": True},
                        {"key": "c"},
                        "nonsense",
                    ],
                    "added": [{"key": "n", "name": "New"}, {"key": "x"}],
                },
                "": {"removed": ["z"]},
                "w2": "bad",
                "w3": {},
            }
        )
        assert state == {
            "w1": ManualWeekState(
                removed=("a",),
                overrides=(OverrideEntry(key="b", done=True),),
                added=(ManualItem(key="n", name="New"),),
            )
        }

    def test_non_mapping(self):
        assert sanitize_manual_state(["w1"]) == {}
        assert sanitize_manual_state(None) == {}

    def test_non_boolean_done_is_ignored(self):
        state = sanitize_manual_state({"w1": {"overrides": [{"key": "b", "done": "yes", "note": "n"}]}})
        assert state["w1"].overrides == (OverrideEntry(key="b", done=None, note="n"),)


class TestKeys:
    def test_week_key_fallbacks(self):
        assert derive_week_key(Week(id="w1", title="Launch"), 0) == "w1"
        assert derive_week_key(Week(id="", title="Launch"), 0) == "Launch"
        assert derive_week_key(Week(id=" ", title=""), 2) == "week-3"

    def test_item_key_prefers_manual_key(self):
        assert derive_item_key(Item(id="x1", name="X", manual_key="custom"), 0) == "custom"
        assert derive_item_key(Item(id="x1", name="X"), 0) == "x1"
        assert derive_item_key(Item(id="", name=""), 4) == "item-5"


class TestApplyManualOverrides:
    def test_remove_override_and_add(self):
        state = {
            "w1": ManualWeekState(
                removed=("a",),
                overrides=(OverrideEntry(key="b", done=True, note="verified"),),
                added=(ManualItem(key="n", name="New task"),),
            )
        }
        week = apply_manual_overrides([sample_week()], state)[0]

        assert [item.id for item in week.items] == ["b", "c", "n"]
        beta = week.items[0]
        assert beta.done is True
        assert beta.note == "verified"
        assert beta.manual_key == "b"
        assert beta.manual_override == ManualOverride(done=True, note="verified")

        added = week.items[2]
        assert added.manual is True
        assert added.checks == ()
        assert added.done is None
        assert added.manual_key == "n"

    def test_inputs_are_not_mutated(self):
        weeks = [sample_week()]
        apply_manual_overrides(weeks, {"w1": ManualWeekState(removed=("a", "b", "c"))})
        assert len(weeks[0].items) == 3

    def test_idempotent(self):
        state = {
            "w1": ManualWeekState(
                removed=("a",),
                overrides=(OverrideEntry(key="b", done=True),),
                added=(ManualItem(key="n", name="New task"),),
            )
        }
        once = apply_manual_overrides([sample_week()], state)
        assert apply_manual_overrides(once, state) == once

    def test_added_item_with_existing_key_is_skipped(self):
        state = {"w1": ManualWeekState(added=(ManualItem(key="c", name="Duplicate"),))}
        week = apply_manual_overrides([sample_week()], state)[0]
        assert [item.name for item in week.items] == ["Alpha", "Beta", "Gamma"]

    def test_override_by_manual_key(self):
        week = Week(id="w1", title="W", items=(Item(id="x1", name="X", manual_key="custom"),))
        state = {"w1": ManualWeekState(overrides=(OverrideEntry(key="custom", done=False),))}
        merged = apply_manual_overrides([week], state)[0]
        assert merged.items[0].done is False
        assert merged.items[0].manual_override == ManualOverride(done=False)

    def test_week_keyed_by_title(self):
        week = Week(id="", title="Launch", items=(Item(id="a", name="A"),))
        merged = apply_manual_overrides([week], {"Launch": ManualWeekState(removed=("a",))})[0]
        assert merged.items == ()

    def test_untouched_weeks_pass_through(self):
        week = sample_week()
        merged = apply_manual_overrides([week], {"other": ManualWeekState(removed=("a",))})
        assert merged[0] is week

    def test_empty_state(self):
        weeks = [sample_week()]
        assert apply_manual_overrides(weeks, {}) == weeks
        assert apply_manual_overrides(weeks, None) == weeks
