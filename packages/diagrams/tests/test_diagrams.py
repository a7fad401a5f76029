"""Tests for the diagrams package."""
import numpy as np
import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mixed_pairs():
    """One pair of every kind plus a zero-persistence pair and a min-max pair."""
    from diagrams.types import CriticalType as T, make_pair
    return [
        make_pair(0.0, 1.0, T.LOCAL_MINIMUM, T.SADDLE1, 0, 1),   # min
        make_pair(1.0, 2.0, T.SADDLE1, T.SADDLE2, 2, 3),         # sad
        make_pair(2.0, 5.0, T.SADDLE2, T.LOCAL_MAXIMUM, 4, 5),   # max
        make_pair(3.0, 3.0, T.LOCAL_MINIMUM, T.SADDLE1, 6, 7),   # zero persistence
        make_pair(0.0, 9.0, T.LOCAL_MINIMUM, T.LOCAL_MAXIMUM, 8, 9),  # global pair
    ]


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

class TestTypes:
    def test_make_pair_persistence(self):
        from diagrams.types import make_pair
        pair = make_pair(1.5, 4.0)
        assert pair.persistence == pytest.approx(2.5)
        assert pair.birth == 1.5
        assert pair.death == 4.0

    def test_default_index_map(self):
        from diagrams.types import Diagram, make_pair
        d = Diagram([make_pair(0, 1), make_pair(0, 2)])
        assert d.indices.tolist() == [0, 1]
        assert d.original_index(1) == 1
        assert d.original_index(-1) == -1

    def test_index_map_length_checked(self):
        from diagrams.types import Diagram, make_pair
        with pytest.raises(ValueError):
            Diagram([make_pair(0, 1)], indices=[0, 1])

    def test_embedding_lambda(self):
        from diagrams.types import Diagram, make_pair
        d = Diagram([make_pair(0, 1, birth_coords=(0, 0, 0), death_coords=(2, 4, 6))])
        assert np.allclose(d.embedding(1.0), [[0, 0, 0]])
        assert np.allclose(d.embedding(0.0), [[2, 4, 6]])
        assert np.allclose(d.embedding(0.5), [[1, 2, 3]])

    def test_subset_keeps_original_indices(self):
        from diagrams.types import Diagram, make_pair
        d = Diagram([make_pair(0, i + 1) for i in range(4)], indices=[10, 11, 12, 13])
        sub = d.subset([3, 1])
        assert len(sub) == 2
        assert sub.original_index(0) == 13
        assert sub.original_index(1) == 11

    def test_from_arrays(self):
        from diagrams.types import CriticalType, Diagram
        d = Diagram.from_arrays([0.0, 1.0], [2.0, 4.0], kind='max')
        assert len(d) == 2
        assert np.allclose(d.persistence(), [2.0, 3.0])
        assert d[0].type_2 == CriticalType.LOCAL_MAXIMUM
        assert d[0].vertex_1 == -1

    def test_from_arrays_empty(self):
        from diagrams.types import Diagram
        d = Diagram.from_arrays(np.zeros(0), np.zeros(0), np.zeros((0, 3)), kind='min')
        assert d.empty
        assert d.embedding().shape == (0, 3)


# ---------------------------------------------------------------------------
# Partitioner
# ---------------------------------------------------------------------------

class TestPartition:
    def test_classify(self, mixed_pairs):
        from diagrams.partition import classify_pair
        kinds = [classify_pair(p) for p in mixed_pairs]
        assert kinds == [('min',), ('sad',), ('max',), (), ('max',)]

    def test_overlapping_kinds(self):
        from diagrams.partition import classify_pair
        from diagrams.types import CriticalType as T, make_pair
        # only the min-max pair is exclusive; other pairs follow independent tests
        pair = make_pair(0.0, 1.0, T.LOCAL_MINIMUM, T.LOCAL_MINIMUM)
        assert classify_pair(pair) == ('min',)
        pair = make_pair(0.0, 1.0, T.LOCAL_MAXIMUM, T.DEGENERATE)
        assert classify_pair(pair) == ('max',)

    def test_partition_index_maps(self, mixed_pairs):
        from diagrams.partition import partition_diagram
        split = partition_diagram(mixed_pairs)
        assert split['min'].indices.tolist() == [0]
        assert split['sad'].indices.tolist() == [1]
        assert split['max'].indices.tolist() == [2, 4]
        assert split['max'][1] is mixed_pairs[4]

    def test_conservation(self, mixed_pairs):
        from diagrams.partition import partition_diagram
        split = partition_diagram(mixed_pairs)
        total = sum(len(d) for d in split.values())
        positive = sum(1 for p in mixed_pairs if p.persistence > 0)
        assert total == positive

    def test_selector_restricts_active(self, mixed_pairs):
        from diagrams.partition import partition_inputs
        parts = partition_inputs([mixed_pairs, mixed_pairs], selector=0)
        assert parts.active == ('min',)
        assert parts.present == {'min': True, 'sad': True, 'max': True}
        assert list(parts.for_input(1)) == ['min']

    def test_all_kinds_by_default(self, mixed_pairs):
        from diagrams.partition import partition_inputs
        parts = partition_inputs([mixed_pairs], selector=-1)
        assert parts.active == ('min', 'sad', 'max')
        assert parts.n_inputs == 1

    def test_missing_kind_disabled(self):
        from diagrams.partition import partition_inputs
        from diagrams.types import CriticalType as T, make_pair
        only_max = [make_pair(0.0, 2.0, T.SADDLE2, T.LOCAL_MAXIMUM)]
        parts = partition_inputs([only_max, only_max])
        assert parts.active == ('max',)
        assert not parts.present['min']

    def test_selector_on_missing_kind(self):
        from diagrams.partition import partition_inputs
        from diagrams.types import CriticalType as T, make_pair
        only_max = [make_pair(0.0, 2.0, T.SADDLE2, T.LOCAL_MAXIMUM)]
        parts = partition_inputs([only_max], selector=0)
        assert parts.active == ()

    def test_empty_input_flag(self, mixed_pairs):
        from diagrams.partition import partition_inputs
        parts = partition_inputs([mixed_pairs, []])
        assert not parts.is_empty_input(0)
        assert parts.is_empty_input(1)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestConfig:
    def test_defaults_valid(self):
        from diagrams.config import ClusteringConfig
        config = ClusteringConfig().validate(n_inputs=1)
        assert config.wasserstein == '2'
        assert config.n_clusters == 1
        assert not config.has_time_limit

    def test_order_normalized(self):
        from diagrams.config import ClusteringConfig
        assert ClusteringConfig(wasserstein=-1).wasserstein == 'inf'
        assert ClusteringConfig(wasserstein='INF').wasserstein == 'inf'
        assert ClusteringConfig(wasserstein=1).wasserstein == '1'

    @pytest.mark.parametrize('kwargs', [
        dict(n_clusters=0),
        dict(alpha=1.5),
        dict(alpha=-0.1),
        dict(lambda_=2.0),
        dict(wasserstein='3'),
        dict(thread_number=0),
        dict(delta_lim=-1.0),
        dict(distance_writing_options=5),
    ])
    def test_invalid(self, kwargs):
        from diagrams.config import ClusteringConfig
        from diagrams.errors import ConfigError
        with pytest.raises(ConfigError):
            ClusteringConfig(**kwargs).validate()

    def test_more_clusters_than_inputs(self):
        from diagrams.config import ClusteringConfig
        from diagrams.errors import ConfigError
        with pytest.raises(ConfigError):
            ClusteringConfig(n_clusters=4).validate(n_inputs=3)

    def test_from_dict(self):
        from diagrams.config import ClusteringConfig
        config = ClusteringConfig.from_dict({'n_clusters': 3, 'use_kmeanspp': True})
        assert config.n_clusters == 3
        assert config.to_dict()['use_kmeanspp'] is True

    def test_from_dict_unknown_key(self):
        from diagrams.config import ClusteringConfig
        from diagrams.errors import ConfigError
        with pytest.raises(ConfigError):
            ClusteringConfig.from_dict({'clusters': 3})

    def test_frozen(self):
        import dataclasses
        from diagrams.config import ClusteringConfig
        config = ClusteringConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.n_clusters = 2

    def test_errors_are_value_errors(self):
        from diagrams.errors import ConfigError, DiagramError, InputError
        assert issubclass(InputError, ValueError)
        assert issubclass(ConfigError, DiagramError)
