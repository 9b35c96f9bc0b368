# tests/test_timeutil_and_graph.py

from __future__ import annotations

import pytest

from dayroute.core.errors import ValidationError
from dayroute.core.models import Location, TravelEdge
from dayroute.core.timeutil import add_minutes, format_hhmm, is_valid_hhmm, minutes_since_midnight, parse_hhmm
from dayroute.planning.locations import LocationGraph

from .fakes import at


def test_hhmm_parse_format_and_wrap() -> None:
    assert parse_hhmm("08:00") == 480
    assert parse_hhmm("23:59") == 1439
    assert format_hhmm(75) == "01:15"
    assert add_minutes("15:00", 15) == "15:15"
    assert add_minutes("23:50", 15) == "00:05"
    assert minutes_since_midnight(at("14:33")) == 873


@pytest.mark.parametrize("bad", ["8:00", "24:00", "12:60", "", "noon", "12:00:00"])
def test_hhmm_rejects_malformed(bad: str) -> None:
    assert not is_valid_hhmm(bad)
    with pytest.raises(ValueError):
        parse_hhmm(bad)


def test_default_graph_lookups(graph: LocationGraph) -> None:
    assert {loc.id for loc in graph.list_locations()} == {"lugano", "bellinzona", "giubiasco", "ertsfeld"}
    assert graph.location_by_id("lugano") == Location("lugano", "Lugano")
    assert graph.location_by_id("zurich") is None
    assert graph.location_by_id(None) is None

    assert graph.travel_time("ertsfeld", "lugano") == 25
    assert graph.travel_time("bellinzona", "giubiasco") == 8
    assert graph.travel_time("lugano", "lugano") is None
    assert graph.travel_time("lugano", "zurich") is None

    assert {loc.id for loc in graph.reachable_from("ertsfeld")} == {"lugano", "bellinzona", "giubiasco"}


def test_graph_rejects_bad_seed_data() -> None:
    locs = [Location("a", "A"), Location("b", "B")]
    with pytest.raises(ValidationError):
        LocationGraph(locs, [TravelEdge("a", "b", 0)])
    with pytest.raises(ValidationError):
        LocationGraph(locs, [TravelEdge("a", "c", 5)])


def test_graph_edges_are_directed() -> None:
    g = LocationGraph([Location("a", "A"), Location("b", "B")], [TravelEdge("a", "b", 5)])
    assert g.travel_time("a", "b") == 5
    assert g.travel_time("b", "a") is None
    assert g.reachable_from("b") == []
