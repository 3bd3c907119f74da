import pytest

from conftest import coord
from waynav.models.route import Segment
from waynav.services.path_model import PathModel


def segment(a, b):
    return Segment(start=a, end=b, polyline=[a, b], distance=100.0, duration=10.0)


@pytest.fixture
def four():
    return [coord(0.0, 0.01 * i) for i in range(4)]


@pytest.fixture
def routed(four):
    model = PathModel()
    model.seed(four, [segment(four[i], four[i + 1]) for i in range(3)])
    return model


def test_empty_model_is_consistent():
    model = PathModel()
    assert len(model) == 0
    assert model.segments == []
    assert model.check_invariant()
    assert model.waypoint(0) is None


def test_seed_without_segments_reports_every_gap(four):
    model = PathModel()
    gaps = model.seed(four)
    assert gaps == [0, 1, 2]
    assert model.routed_segments == []
    assert model.check_invariant()


def test_seed_bumps_generation(four):
    model = PathModel()
    model.seed(four)
    first = model.generation
    model.seed(four[:2])
    assert model.generation == first + 1


def test_append_first_waypoint_has_no_slot():
    model = PathModel()
    model.append_waypoint(coord(1.0, 1.0))
    assert len(model) == 1
    assert model.segments == []
    assert model.check_invariant()


def test_append_without_segment_is_a_gap(four):
    model = PathModel()
    model.append_waypoint(four[0])
    model.append_waypoint(four[1])
    assert model.gaps == [0]
    assert model.routed_segments == []
    assert model.check_invariant()


def test_insert_interior_marks_both_neighbours_stale(routed, four):
    before = routed.segments
    stale = routed.insert_waypoint(2, coord(0.001, 0.015))
    assert stale == [1, 2]
    assert len(routed) == 5
    assert routed.check_invariant()
    segments = routed.segments
    assert segments[0] is before[0]
    assert segments[2] is None
    assert segments[3] is before[2]
    assert routed.stale == [1, 2]


def test_insert_at_front_and_back(routed):
    assert routed.insert_waypoint(0, coord(0.0, -0.01)) == [0]
    assert routed.insert_waypoint(5, coord(0.0, 0.05)) == [4]
    assert routed.check_invariant()


def test_insert_into_empty_model():
    model = PathModel()
    assert model.insert_waypoint(0, coord(1.0, 1.0)) == []
    assert len(model) == 1


def test_insert_out_of_range_raises(routed):
    with pytest.raises(IndexError):
        routed.insert_waypoint(10, coord(0.0, 0.0))


def test_insert_shifts_existing_stale_marks(routed):
    routed.move_waypoint(3, coord(0.001, 0.03))
    assert routed.stale == [2]
    routed.insert_waypoint(1, coord(0.001, 0.005))
    assert routed.stale == [0, 1, 3]


def test_remove_interior_merges_slots(routed, four):
    before = routed.segments
    stale = routed.remove_waypoint(1)
    assert stale == [0]
    assert routed.coordinates == [four[0], four[2], four[3]]
    assert routed.segments == [None, before[2]]
    assert routed.check_invariant()


def test_remove_end_points_need_no_routing(routed, four):
    assert routed.remove_waypoint(0) == []
    assert routed.remove_waypoint(len(routed) - 1) == []
    assert routed.coordinates == [four[1], four[2]]
    assert routed.check_invariant()


def test_remove_down_to_empty(four):
    model = PathModel()
    model.seed(four[:2])
    model.remove_waypoint(0)
    model.remove_waypoint(0)
    assert len(model) == 0
    assert model.check_invariant()


def test_move_keeps_identity_and_marks_adjacent(routed):
    before = routed.waypoint(1).id
    assert routed.move_waypoint(1, coord(0.002, 0.01)) == [0, 1]
    assert routed.waypoint(1).id == before
    assert routed.waypoint(1).coordinate == coord(0.002, 0.01)
    assert routed.move_waypoint(0, coord(0.0, -0.001)) == [0]


def test_set_segment_clears_stale(routed, four):
    routed.move_waypoint(1, coord(0.002, 0.01))
    routed.set_segment(0, segment(four[0], coord(0.002, 0.01)))
    assert routed.stale == [1]
    with pytest.raises(IndexError):
        routed.set_segment(3, None)


def test_snapshot_is_detached(routed):
    snap = routed.snapshot()
    routed.remove_waypoint(1)
    assert len(snap.waypoints) == 4
    assert len(snap.segments) == 3
