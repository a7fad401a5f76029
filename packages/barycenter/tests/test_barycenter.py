"""Tests for the barycenter package."""
import numpy as np
import pytest


def points(*xy):
    from auction.cost import PointSet
    return PointSet.from_arrays(np.asarray(xy, dtype=float))


class TestBarycenter:
    def test_single_member_is_itself(self):
        from barycenter import wasserstein_barycenter
        member = points([0.0, 5.0], [1.0, 3.0])
        res = wasserstein_barycenter([member])
        assert res.cost == pytest.approx(0.0, abs=1e-9)
        assert np.allclose(res.points.xy, member.xy)
        assert res.n_iterations == 0

    def test_identical_members(self):
        from auction.cost import WassersteinOrder
        from barycenter import wasserstein_barycenter
        member = points([0.0, 5.0])
        res = wasserstein_barycenter([member, member], WassersteinOrder.TWO, kind='max')
        assert res.cost == pytest.approx(0.0, abs=1e-9)
        assert len(res.diagram) == 1
        assert res.diagram[0].persistence == pytest.approx(5.0)
        assert res.diagram.kind == 'max'

    def test_midpoint_of_two_points(self):
        from barycenter import wasserstein_barycenter
        res = wasserstein_barycenter([points([0.0, 4.0]), points([0.0, 6.0])])
        assert len(res.points) == 1
        assert np.allclose(res.points.xy, [[0.0, 5.0]], atol=1e-6)
        assert res.cost == pytest.approx(2.0, rel=1e-6)
        assert res.distances == pytest.approx([1.0, 1.0], rel=1e-6)

    def test_cost_never_increases(self):
        from auction.cost import PointSet, WassersteinOrder
        from auction.match import match_diagrams
        from barycenter import wasserstein_barycenter
        rng = np.random.RandomState(0)
        members = []
        for _ in range(5):
            n = rng.randint(3, 10)
            births = rng.uniform(0, 5, n)
            members.append(PointSet.from_arrays(
                np.column_stack([births, births + rng.uniform(0.5, 4, n)])
            ))
        init = members[2]
        start = sum(match_diagrams(m, init, WassersteinOrder.TWO).cost for m in members)
        res = wasserstein_barycenter(members, WassersteinOrder.TWO, init=init)
        assert res.cost <= start + 1e-9
        assert len(res.matchings) == 5
        assert res.cost == pytest.approx(sum(d ** 2 for d in res.distances), rel=1e-6)

    def test_unmatched_points_spawn(self):
        from barycenter import wasserstein_barycenter
        # the far point only exists in one member out of two
        a = points([0.0, 10.0])
        b = points([0.0, 10.0], [20.0, 30.0])
        res = wasserstein_barycenter([a, b], init=a)
        assert res.points_added >= 1
        assert len(res.points) == 2
        spawned = res.points.xy[np.argmax(res.points.xy[:, 0])]
        # halfway between (20, 30) and its diagonal projection (25, 25)
        assert np.allclose(spawned, [22.5, 27.5], atol=1e-6)

    def test_bottleneck_order(self):
        from auction.cost import WassersteinOrder
        from barycenter import wasserstein_barycenter
        res = wasserstein_barycenter(
            [points([0.0, 4.0]), points([0.0, 6.0])], WassersteinOrder.INF
        )
        assert len(res.points) == 1
        assert res.cost <= 2.0 + 1e-9

    def test_empty_members(self):
        from auction.cost import PointSet
        from barycenter import wasserstein_barycenter
        res = wasserstein_barycenter([PointSet.empty(), PointSet.empty()], kind='min')
        assert len(res.points) == 0
        assert res.diagram.empty
        assert wasserstein_barycenter([]).cost == 0.0

    def test_warm_start_from_empty_init(self):
        from auction.cost import PointSet
        from barycenter import wasserstein_barycenter
        member = points([0.0, 5.0])
        res = wasserstein_barycenter([member, member], init=PointSet.empty())
        assert np.allclose(res.points.xy, member.xy)
