import asyncio

import pytest

from conftest import coord, drain
from waynav.geometry import Point, ScaledViewport
from waynav.models.route import StepRoute
from waynav.services.edit_session import EditMode, EditSession


async def build(session, *points):
    for p in points:
        await session.handle_tap_add(p)
    await session.settle()


@pytest.fixture
def viewport():
    # Top-left corner north-west of the equator points
    return ScaledViewport(coord(0.001, -0.001), metres_per_pixel=1.0)


@pytest.mark.asyncio
async def test_tap_add_routes_from_last_point(router, abc):
    a, b, c = abc
    session = EditSession(router)
    await build(session, a, b, c)

    model = session.model
    assert model.coordinates == [a, b, c]
    assert len(model.routed_segments) == 2
    assert model.segments[0].start == a and model.segments[0].end == b
    assert model.segments[1].start == b and model.segments[1].end == c
    assert router.calls == [(a, b), (b, c)]
    assert session.mode == EditMode.CREATE_NEW


@pytest.mark.asyncio
async def test_tap_add_routing_failure_leaves_gap(router, abc):
    a, b, _ = abc
    router.fail_all = True
    session = EditSession(router)
    await build(session, a, b)

    model = session.model
    assert len(model) == 2
    assert model.routed_segments == []
    assert model.gaps == [0]
    assert model.check_invariant()
    assert session.unrouted_indices() == [0]


@pytest.mark.asyncio
async def test_tap_add_after_tail_moved_schedules_new_pair(router, abc):
    a, _, c = abc
    moved = coord(0.001, 0.0)
    session = EditSession(router)
    await session.handle_tap_add(a)

    release = router.hold(c)
    task = asyncio.get_running_loop().create_task(session.handle_tap_add(c))
    await drain()
    session.move_waypoint(0, moved)
    release.set()
    await task
    await session.settle()

    segment = session.model.segments[0]
    assert segment.start == moved
    assert segment.end == c


@pytest.mark.asyncio
async def test_insert_on_path_aligns_segments(router, abc, viewport):
    a, b, c = abc
    session = EditSession(router)
    await build(session, a, b, c)
    bc = session.model.segments[1]

    on_ab = viewport.to_screen(coord(0.0, 0.005))
    inserted = session.try_insert_on_path(Point(on_ab.x, on_ab.y + 5), viewport)
    assert inserted
    await session.settle()

    model = session.model
    x = model.coordinates[1]
    assert model.coordinates[0] == a
    assert model.coordinates[2:] == [b, c]
    assert x.longitude == pytest.approx(0.005, abs=1e-6)
    assert [(s.start, s.end) for s in model.segments] == [(a, x), (x, b), (b, c)]
    assert model.segments[2] is bc
    assert model.check_invariant()


@pytest.mark.asyncio
async def test_second_insert_before_reroute_keeps_path_order(router, abc, viewport):
    a, b, c = abc
    session = EditSession(router)
    await build(session, a, b, c)

    assert session.try_insert_on_path(viewport.to_screen(coord(0.0, 0.005)), viewport)
    # Slots around the new point are still being rerouted
    assert not session.try_insert_on_path(viewport.to_screen(coord(0.0, 0.0075)), viewport)
    await session.settle()

    longitudes = [p.longitude for p in session.model.coordinates]
    assert longitudes == pytest.approx([0.0, 0.005, 0.01, 0.02], abs=1e-6)

    assert session.try_insert_on_path(viewport.to_screen(coord(0.0, 0.0075)), viewport)
    await session.settle()

    longitudes = [p.longitude for p in session.model.coordinates]
    assert longitudes == pytest.approx([0.0, 0.005, 0.0075, 0.01, 0.02], abs=1e-6)
    assert session.unrouted_indices() == []
    assert session.model.check_invariant()


@pytest.mark.asyncio
async def test_insert_beyond_tolerance_is_ignored(router, abc, viewport):
    a, b, c = abc
    session = EditSession(router)
    await build(session, a, b, c)
    before = session.snapshot()
    calls = len(router.calls)

    on_ab = viewport.to_screen(coord(0.0, 0.005))
    assert not session.try_insert_on_path(Point(on_ab.x, on_ab.y + 100), viewport)
    assert session.snapshot() == before
    assert len(router.calls) == calls


@pytest.mark.asyncio
async def test_insert_needs_a_routed_segment(router, abc, viewport):
    a, b, _ = abc
    router.fail_all = True
    session = EditSession(router)
    await build(session, a, b)

    on_ab = viewport.to_screen(coord(0.0, 0.005))
    assert not session.try_insert_on_path(on_ab, viewport)
    assert len(session.model) == 2


@pytest.mark.asyncio
async def test_drag_drops_results_for_superseded_positions(router, abc):
    a, b, c = abc
    p1, p2 = coord(0.002, 0.01), coord(0.003, 0.011)
    session = EditSession(router)
    await build(session, a, b, c)
    waypoint_id = session.model.waypoint(1).id

    release = router.hold(p1)
    session.move_waypoint(1, p1)
    await drain()
    session.move_waypoint(1, p2)
    await drain()
    release.set()
    await session.settle()

    model = session.model
    assert model.waypoint(1).id == waypoint_id
    assert model.coordinates == [a, p2, c]
    assert (model.segments[0].start, model.segments[0].end) == (a, p2)
    assert (model.segments[1].start, model.segments[1].end) == (p2, c)
    assert model.stale == []


@pytest.mark.asyncio
async def test_moves_of_different_waypoints_apply_independently(router):
    a, b, c, d = [coord(0.0, 0.01 * i) for i in range(4)]
    q0, q2 = coord(0.001, 0.0), coord(0.001, 0.02)
    session = EditSession(router)
    await build(session, a, b, c, d)

    release_q0 = router.hold(q0)
    release_q2 = router.hold(q2)
    session.move_waypoint(0, q0)
    session.move_waypoint(2, q2)
    await drain()
    assert session.model.stale == [0, 1, 2]

    # Released in reverse dispatch order
    release_q2.set()
    await drain()
    model = session.model
    assert model.stale == [0]
    assert (model.segments[1].start, model.segments[1].end) == (b, q2)
    assert (model.segments[2].start, model.segments[2].end) == (q2, d)

    release_q0.set()
    await session.settle()
    assert model.stale == []
    assert (model.segments[0].start, model.segments[0].end) == (q0, b)
    assert (model.segments[1].start, model.segments[1].end) == (b, q2)
    assert model.gaps == []


@pytest.mark.asyncio
async def test_reset_discards_results_in_flight(router, abc):
    a, b, _ = abc
    p1 = coord(0.002, 0.01)
    session = EditSession(router)
    await build(session, a, b)

    release = router.hold(p1)
    session.move_waypoint(1, p1)
    await drain()
    session.reset()
    release.set()
    await session.settle()

    assert len(session.model) == 0
    assert session.model.segments == []
    assert session.pending_count == 0


@pytest.mark.asyncio
async def test_remove_interior_waypoint_reroutes_merged_slot(router, abc):
    a, b, c = abc
    session = EditSession(router)
    await build(session, a, b, c)

    session.remove_waypoint(1)
    await session.settle()

    model = session.model
    assert model.coordinates == [a, c]
    assert (model.segments[0].start, model.segments[0].end) == (a, c)


@pytest.mark.asyncio
async def test_seed_routes_every_pair(router, abc):
    session = EditSession(router)
    session.seed(list(abc))
    assert session.unrouted_indices() == [0, 1]
    await session.settle()

    assert session.unrouted_indices() == []
    assert session.mode == EditMode.EDIT_EXISTING


@pytest.mark.asyncio
async def test_seed_from_route_uses_route_geometry(router, abc):
    a, b, c = abc
    route = StepRoute(distance=2200.0, duration=180.0, polyline=[a, b, c])
    session = EditSession(router)
    session.seed_from_route(route)

    model = session.model
    assert model.coordinates == [a, c]
    assert model.segments[0].polyline == [a, b, c]
    assert model.segments[0].duration == 180.0
    assert router.calls == []

    session.seed_from_route(route, current_position=a)
    assert session.model.segments[0].polyline == [a, b, c]
    assert router.calls == []


@pytest.mark.asyncio
async def test_seed_from_route_off_start_reroutes_from_live_position(router, abc):
    a, b, c = abc
    here = coord(0.001, -0.001)
    route = StepRoute(distance=2200.0, duration=180.0, polyline=[a, b, c])
    session = EditSession(router)
    session.seed_from_route(route, current_position=here)
    assert session.model.coordinates == [here, c]
    assert session.unrouted_indices() == [0]

    await session.settle()

    segment = session.model.segments[0]
    assert (segment.start, segment.end) == (here, c)
    assert segment.polyline[0] == here
    assert router.calls == [(here, c)]


@pytest.mark.asyncio
async def test_listeners_get_snapshots_until_unsubscribed(router, abc):
    a, b, _ = abc
    seen = []
    session = EditSession(router)
    unsubscribe = session.subscribe(seen.append)

    await session.handle_tap_add(a)
    assert len(seen) == 1
    assert seen[0].coordinates == [a]

    unsubscribe()
    await session.handle_tap_add(b)
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_materialize_adds_leading_segment_and_retries_gaps(router, abc):
    a, b, c = abc
    here = coord(0.001, -0.002)
    router.fail_once.add((b, c))
    session = EditSession(router)
    await build(session, a, b, c)
    assert session.unrouted_indices() == [1]

    chain = await session.materialize_for_navigation(here)

    assert [(s.start, s.end) for s in chain.segments] == [(here, a), (a, b), (b, c)]
    assert chain.total_distance == pytest.approx(sum(s.distance for s in chain.segments))
    assert chain.total_duration is not None
    assert session.unrouted_indices() == []


@pytest.mark.asyncio
async def test_materialize_skips_gaps_that_still_fail(router, abc):
    a, b, c = abc
    router.fail_pairs.add((b, c))
    session = EditSession(router)
    await build(session, a, b, c)

    chain = await session.materialize_for_navigation(a)

    assert [(s.start, s.end) for s in chain.segments] == [(a, b)]


@pytest.mark.asyncio
async def test_materialize_empty_path(router):
    chain = await EditSession(router).materialize_for_navigation(coord(1.0, 1.0))
    assert chain.segments == []
    assert chain.total_distance == 0.0
