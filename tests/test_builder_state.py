import pytest

from charts import BuilderState, catalog_choices
from processing.builder import build_catalog
from processing.tabular import parse_records
from registry.series_registry import ExplicitMappingResolver

from conftest import FEED_RECORDS


def test_add_then_remove_restores_bindings():
    state = BuilderState()
    state.add("A", "left", "#111")
    before = state.snapshot()

    state.add("B", "right", "#222")
    state.remove(1)

    assert state.snapshot() == before


def test_duplicate_bindings_are_allowed():
    state = BuilderState()
    state.add("A", "left", "#111")
    state.add("A", "right", "#111")
    assert [b.series_id for b in state.bindings] == ["A", "A"]
    assert state.bound_ids() == {"A"}


def test_add_uses_default_type_and_validates_axis():
    state = BuilderState(default_type="area")
    binding = state.add("A", "right", "#111")
    assert binding.render_type == "area"
    assert binding.invert_axis is False
    with pytest.raises(ValueError):
        state.add("B", "middle", "#222")


def test_select_toggles():
    state = BuilderState()
    state.add("A", "left", "#111")
    assert state.select("A") == "A"
    assert state.select("A") is None
    state.select("A")
    assert state.select(None) is None


def test_remove_clears_matching_selection():
    state = BuilderState()
    state.add("A", "left", "#111")
    state.add("B", "left", "#222")
    state.select("B")
    state.remove(0)
    assert state.selected_series_id == "B"
    state.remove(0)
    assert state.selected_series_id is None
    with pytest.raises(IndexError):
        state.remove(0)


def test_reconfigure_fields():
    state = BuilderState()
    state.add("A", "left", "#111")
    state.reconfigure(0, "axis", "right")
    state.reconfigure(0, "renderType", "bar")
    state.reconfigure(0, "color", "#abc")
    state.reconfigure(0, "invertAxis", True)
    assert state.bindings[0].to_dict() == {
        "seriesId": "A", "axis": "right", "renderType": "bar", "color": "#abc", "invertAxis": True,
    }


def test_reconfigure_errors():
    state = BuilderState()
    state.add("A", "left", "#111")
    with pytest.raises(IndexError):
        state.reconfigure(3, "axis", "right")
    with pytest.raises(ValueError):
        state.reconfigure(0, "width", 2)
    with pytest.raises(ValueError):
        state.reconfigure(0, "render_type", "candles")
    with pytest.raises(ValueError):
        state.reconfigure(0, "color", "")
    with pytest.raises(ValueError):
        state.reconfigure(0, "invertAxis", "false")
    assert state.bindings[0].invert_axis is False


def test_bulk_set_type_applies_to_future_adds():
    state = BuilderState()
    state.add("A", "left", "#111")
    state.bulk_set_type("bar")
    state.add("B", "right", "#222")
    assert [b.render_type for b in state.bindings] == ["bar", "bar"]
    with pytest.raises(ValueError):
        state.bulk_set_type("pie")


def test_move():
    state = BuilderState()
    for series_id in "ABC":
        state.add(series_id, "left", "#111")
    state.move(0, 2)
    assert [b.series_id for b in state.bindings] == ["B", "C", "A"]
    with pytest.raises(IndexError):
        state.move(0, 3)


def test_every_mutation_notifies_subscribers():
    state = BuilderState()
    revisions = []
    unsubscribe = state.subscribe(lambda s: revisions.append(s.revision))

    state.add("A", "left", "#111")
    state.select("A")
    state.reconfigure(0, "axis", "right")
    unsubscribe()
    state.remove(0)

    assert revisions == [1, 2, 3]
    assert state.revision == 4


def test_seed_defaults_prefers_configured_pair():
    catalog = build_catalog(parse_records(FEED_RECORDS), ExplicitMappingResolver())
    state = BuilderState()
    assert state.seed_defaults(catalog) is True
    assert [(b.series_id, b.axis, b.render_type) for b in state.bindings] == [
        ("WRESBAL_MLN_USD", "left", "area"),
        ("BITCOIN", "right", "line"),
    ]
    assert state.seed_defaults(catalog) is False


def test_seed_defaults_falls_back_to_first_two(csv_catalog):
    state = BuilderState()
    state.seed_defaults(csv_catalog)
    assert [(b.series_id, b.axis) for b in state.bindings] == [("WRESBAL", "left"), ("RATE", "right")]


def test_catalog_choices_flags_bound_series(csv_catalog):
    state = BuilderState()
    state.add("RATE", "right", "#111")
    choices = catalog_choices(state, csv_catalog)
    assert [(c["id"], c["added"]) for c in choices] == [("WRESBAL", False), ("RATE", True)]
    assert [c["id"] for c in catalog_choices(state, csv_catalog, "wres")] == ["WRESBAL"]
