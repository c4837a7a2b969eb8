from skytrade_explorer.common.models import DRONE, GeoBounds
from skytrade_explorer.viewport.planner import FetchAreaPlanner, MovementPolicy, OverlapPolicy, edges_outside

VIEW = GeoBounds(north=40.0, south=30.0, east=-100.0, west=-110.0)


def test_small_zoom_in_over_cached_data_skips_fetch():
    planner = FetchAreaPlanner()

    assert planner.plan_fetch(VIEW, 5.5, DRONE, prev_zoom=5, cached_count=10) == []


def test_large_zoom_change_fetches():
    planner = FetchAreaPlanner()

    assert planner.plan_fetch(VIEW, 9, DRONE, prev_zoom=5, cached_count=10) != []


def test_zoom_out_or_empty_cache_fetches():
    planner = FetchAreaPlanner()

    assert planner.plan_fetch(VIEW, 4.5, DRONE, prev_zoom=5, cached_count=10) != []
    assert planner.plan_fetch(VIEW, 5.5, DRONE, prev_zoom=5, cached_count=0) != []
    assert planner.plan_fetch(VIEW, 5, DRONE, prev_zoom=5, cached_count=10) != []


def test_planner_delegates_to_splitter():
    planner = FetchAreaPlanner()
    world = GeoBounds(north=60.0, south=-40.0, east=120.0, west=-120.0)

    assert len(planner.plan_fetch(world, 2, DRONE, prev_zoom=8, cached_count=0)) == 9
    assert planner.is_high_detail(10)
    assert not planner.is_high_detail(9.9)


def test_overlap_policy_suppresses_identical_viewport():
    policy = OverlapPolicy()

    assert policy.should_fetch(VIEW, [])
    assert not policy.should_fetch(VIEW, [VIEW])


def test_overlap_policy_compares_each_box_individually():
    policy = OverlapPolicy()
    left = GeoBounds(north=40.0, south=30.0, east=-105.0, west=-110.0)
    right = GeoBounds(north=40.0, south=30.0, east=-100.0, west=-105.0)

    # together they cover VIEW completely, but neither does on its own
    assert policy.should_fetch(VIEW, [left, right])


def test_overlap_policy_threshold_and_history_window():
    policy = OverlapPolicy(threshold=0.85, history=10)
    mostly = GeoBounds(north=40.0, south=30.0, east=-100.0, west=-109.0)  # 90% of VIEW
    barely = GeoBounds(north=40.0, south=30.0, east=-100.0, west=-108.0)  # 80% of VIEW
    far = GeoBounds(north=10.0, south=0.0, east=10.0, west=0.0)

    assert not policy.should_fetch(VIEW, [mostly])
    assert policy.should_fetch(VIEW, [barely])
    assert policy.should_fetch(VIEW, [mostly] + [far] * 10)


def test_movement_policy_requires_real_movement():
    policy = MovementPolicy()
    old = VIEW

    assert policy.should_fetch(old, None)
    assert not policy.should_fetch(old, old)
    nudged = GeoBounds(north=41.0, south=31.0, east=-99.0, west=-109.0)
    assert not policy.should_fetch(nudged, old)
    moved = GeoBounds(north=46.0, south=36.0, east=-94.0, west=-104.0)
    assert policy.should_fetch(moved, old)


def test_movement_policy_needs_two_edges_outside():
    old = VIEW
    # shrinks inside the old box: little overlap relative to old, but no edge outside
    inner = GeoBounds(north=35.0, south=34.0, east=-104.0, west=-105.0)

    assert edges_outside(inner, old) == 0
    assert not MovementPolicy().should_fetch(inner, old)


def test_movement_policy_rejects_tall_viewports():
    tall = GeoBounds(north=60.0, south=20.0, east=-90.0, west=-100.0)

    assert not MovementPolicy().should_fetch(tall, None)
