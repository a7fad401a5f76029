"""Tests for the progressive package."""
import numpy as np
import pytest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def random_points(rng, n, spread=10.0):
    from auction.cost import PointSet
    births = rng.uniform(0, spread, n)
    deaths = births + rng.exponential(spread / 4, n) + 1e-3
    return PointSet.from_arrays(np.column_stack([births, deaths]))


def ladders_for(parts, order, alpha=1.0):
    from progressive.ladder import PersistenceLadder
    return {k: PersistenceLadder(p, order, alpha) for k, p in parts.items()}


def schedule_for(*parts_list):
    from progressive.ladder import threshold_schedule
    return threshold_schedule(
        np.concatenate([p.persistence() for parts in parts_list for p in parts.values()])
    )


# ---------------------------------------------------------------------------
# Ladder
# ---------------------------------------------------------------------------

class TestSchedule:
    def test_ends_at_zero(self):
        from progressive.ladder import threshold_schedule
        levels = threshold_schedule([1.0, 2.0, 8.0])
        assert levels[-1] == 0.0
        assert levels[0] == pytest.approx(4.0)
        assert np.all(np.diff(levels) < 0)

    def test_empty(self):
        from progressive.ladder import threshold_schedule
        assert threshold_schedule([]).tolist() == [0.0]
        assert threshold_schedule([0.0, -1.0]).tolist() == [0.0]

    def test_level_cap(self):
        from progressive.ladder import threshold_schedule
        levels = threshold_schedule([1e-9, 1.0], max_levels=3)
        assert len(levels) == 4


class TestLadder:
    def test_full_resolution_is_input(self):
        from auction.cost import WassersteinOrder
        from progressive.ladder import PersistenceLadder
        points = random_points(np.random.RandomState(0), 10)
        ladder = PersistenceLadder(points, WassersteinOrder.TWO, 1.0)
        shown, residual = ladder.at(0.0)
        assert shown is points
        assert residual == 0.0

    def test_truncation(self):
        from auction.cost import PointSet, WassersteinOrder
        from progressive.ladder import PersistenceLadder
        points = PointSet.from_arrays([[0, 1], [0, 8], [0, 2], [0, 6]])
        ladder = PersistenceLadder(points, WassersteinOrder.TWO, 1.0)
        assert ladder.visible(5.0) == 2
        shown, residual = ladder.at(5.0)
        # visible points keep their source order
        assert shown.xy[:, 1].tolist() == [8, 6]
        hidden = 2 * 0.5 ** 2 + 2 * 1.0 ** 2
        assert residual == pytest.approx(np.sqrt(hidden))

    def test_truncation_bottleneck(self):
        from auction.cost import PointSet, WassersteinOrder
        from progressive.ladder import PersistenceLadder
        points = PointSet.from_arrays([[0, 1], [0, 8], [0, 2]])
        ladder = PersistenceLadder(points, WassersteinOrder.INF, 1.0)
        _, residual = ladder.at(5.0)
        assert residual == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------

class TestBounds:
    @pytest.mark.parametrize('order', ['1', '2', 'inf'])
    def test_bounds_contain_distance(self, order):
        from auction.cost import WassersteinOrder, combine_distances
        from auction.match import wasserstein_distance
        from progressive.bounds import combined_bounds
        order = WassersteinOrder.parse(order)
        rng = np.random.RandomState(1)
        for _ in range(4):
            a = {'max': random_points(rng, 20), 'min': random_points(rng, 6)}
            b = {'max': random_points(rng, 15), 'min': random_points(rng, 9)}
            la, lb = ladders_for(a, order), ladders_for(b, order)
            truth = combine_distances(
                [wasserstein_distance(a[k], b[k], order) for k in a], order
            )
            for t in schedule_for(a, b):
                bounds = combined_bounds(la, lb, t, order, 1.0)
                assert bounds.lower <= truth * (1 + 1e-6) + 1e-9
                assert bounds.upper >= truth * (1 - 1e-6) - 1e-9

    @pytest.mark.parametrize('order', ['1', '2', 'inf'])
    def test_progressive_equals_full(self, order):
        from auction.cost import WassersteinOrder
        from auction.match import wasserstein_distance
        from progressive.bounds import progressive_distance
        order = WassersteinOrder.parse(order)
        rng = np.random.RandomState(2)
        a = {'sad': random_points(rng, 25)}
        b = {'sad': random_points(rng, 30)}
        bounds = progressive_distance(
            ladders_for(a, order), ladders_for(b, order), schedule_for(a, b), order, 1.0
        )
        full = wasserstein_distance(a['sad'], b['sad'], order)
        assert bounds.upper == pytest.approx(full, rel=1e-6)

    def test_tolerance_stops_early(self):
        from auction.cost import WassersteinOrder
        from progressive.bounds import progressive_distance
        order = WassersteinOrder.TWO
        rng = np.random.RandomState(3)
        a = {'max': random_points(rng, 25)}
        b = {'max': random_points(rng, 25)}
        bounds = progressive_distance(
            ladders_for(a, order), ladders_for(b, order), schedule_for(a, b), order, 1.0,
            tolerance=10.0,
        )
        assert bounds.width <= 10.0 * bounds.upper

    def test_deadline_keeps_last_bracket(self, monkeypatch):
        import progressive.bounds as pb
        from auction.cost import WassersteinOrder
        from diagrams.errors import DeadlineExceeded
        order = WassersteinOrder.TWO
        rng = np.random.RandomState(4)
        a = {'max': random_points(rng, 10)}
        b = {'max': random_points(rng, 10)}
        real = pb.combined_bounds
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) > 1:
                raise DeadlineExceeded("time limit reached")
            return real(*args, **kwargs)

        monkeypatch.setattr(pb, 'combined_bounds', flaky)
        thresholds = schedule_for(a, b)
        assert len(thresholds) > 1
        bounds = pb.progressive_distance(
            ladders_for(a, order), ladders_for(b, order), thresholds, order, 1.0
        )
        assert bounds.upper >= bounds.lower

    def test_deadline_before_first_bracket(self, monkeypatch):
        import progressive.bounds as pb
        from auction.cost import WassersteinOrder
        from diagrams.errors import DeadlineExceeded

        def late(*args, **kwargs):
            raise DeadlineExceeded("time limit reached")

        monkeypatch.setattr(pb, 'combined_bounds', late)
        order = WassersteinOrder.TWO
        a = {'max': random_points(np.random.RandomState(5), 4)}
        with pytest.raises(DeadlineExceeded):
            pb.progressive_distance(ladders_for(a, order), ladders_for(a, order), [1.0, 0.0], order, 1.0)

    def test_distance_bounds_properties(self):
        from progressive.bounds import DistanceBounds
        b = DistanceBounds(1.0, 3.0)
        assert b.width == 2.0
        assert b.midpoint == 2.0
        assert not b.exact
        assert DistanceBounds(2.0, 2.0).exact


# ---------------------------------------------------------------------------
# Nearest
# ---------------------------------------------------------------------------

class TestNearest:
    def test_nearest_index_ties(self):
        from progressive.bounds import nearest_index
        assert nearest_index({2: 1.0, 0: 1.0, 1: 3.0}) == 0
        assert nearest_index({3: 0.5, 1: 0.7}) == 3

    @pytest.mark.parametrize('order', ['1', '2', 'inf'])
    def test_matches_exhaustive(self, order):
        from auction.cost import WassersteinOrder
        from auction.match import wasserstein_distance
        from progressive.bounds import nearest_index, progressive_nearest
        order = WassersteinOrder.parse(order)
        rng = np.random.RandomState(6)
        centroids = [{'max': random_points(rng, rng.randint(3, 20))} for _ in range(4)]
        centroid_ladders = [ladders_for(c, order) for c in centroids]
        for _ in range(5):
            diagram = {'max': random_points(rng, rng.randint(3, 20))}
            exact = {
                k: wasserstein_distance(diagram['max'], c['max'], order)
                for k, c in enumerate(centroids)
            }
            res = progressive_nearest(
                ladders_for(diagram, order), centroid_ladders, range(4),
                schedule_for(diagram, *centroids), order, 1.0,
            )
            assert exact[res.index] == pytest.approx(exact[nearest_index(exact)], rel=1e-6)
            assert res.distance == pytest.approx(exact[res.index], rel=1e-6)
            for k, lower in res.lower_bounds.items():
                assert lower <= exact[k] * (1 + 1e-6) + 1e-9

    def test_single_candidate(self):
        from auction.cost import WassersteinOrder
        from auction.match import wasserstein_distance
        from progressive.bounds import progressive_nearest
        order = WassersteinOrder.TWO
        rng = np.random.RandomState(7)
        diagram = {'min': random_points(rng, 8)}
        centroid = {'min': random_points(rng, 8)}
        res = progressive_nearest(
            ladders_for(diagram, order), [ladders_for(centroid, order)], [0],
            schedule_for(diagram, centroid), order, 1.0,
        )
        assert res.index == 0
        assert res.distance == pytest.approx(
            wasserstein_distance(diagram['min'], centroid['min'], order), rel=1e-6
        )
