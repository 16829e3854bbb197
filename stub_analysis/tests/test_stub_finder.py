import random

from stub_analysis.event_model import Cluster, ClusterKey, ClusterMap, Column, Layer
from stub_analysis.filters.stub_finder import StubEfficiency, count_stubs, find_stubs
from stub_analysis.utils.histograms import HistogramStore


class RecordingSink:
    def __init__(self):
        self.values = []

    def record(self, name, value):
        self.values.append((name, value))
        return True


def make_map(det0, det1, column=Column.C0):
    cmap = ClusterMap()
    cmap.extend(ClusterKey(Layer.DET0, column), [Cluster(p, 1) for p in det0])
    cmap.extend(ClusterKey(Layer.DET1, column), [Cluster(p, 1) for p in det1])
    return cmap


def test_window_zero_exact_match():
    sink = RecordingSink()
    summary = find_stubs(make_map([5.0], [5.0]), Column.C0, 0, sink)
    assert summary.n_stubs == 1
    assert summary.efficiency == StubEfficiency.STUB_FOUND
    assert ("StubInfo/stubEffC0", 1) in sink.values


def test_window_zero_no_match():
    sink = RecordingSink()
    summary = find_stubs(make_map([5.0], [7.0]), Column.C0, 0, sink)
    assert summary.n_stubs == 0
    assert summary.efficiency == StubEfficiency.NO_STUB
    assert ("StubInfo/stubEffC0", 0) in sink.values


def test_window_is_inclusive():
    assert count_stubs([Cluster(5.0, 1)], [Cluster(7.0, 1)], 2) == 1
    assert count_stubs([Cluster(5.0, 1)], [Cluster(7.5, 1)], 2) == 0


def test_counts_all_pairs():
    det0 = [Cluster(10.0, 1), Cluster(11.0, 1)]
    det1 = [Cluster(10.5, 2)]
    assert count_stubs(det0, det1, 1) == 2


def test_count_independent_of_order():
    det0 = [Cluster(float(x), 1) for x in (3, 40, 41, 300, 512)]
    det1 = [Cluster(float(x), 1) for x in (2, 42, 299, 700)]
    expected = count_stubs(det0, det1, 3)
    rng = random.Random(7)
    for _ in range(5):
        rng.shuffle(det0)
        rng.shuffle(det1)
        assert count_stubs(det0, det1, 3) == expected
        assert count_stubs(det1, det0, 3) == expected


def test_no_efficiency_when_layer_empty():
    sink = RecordingSink()
    summary = find_stubs(make_map([5.0, 9.0], [], Column.C1), Column.C1, 7, sink)
    assert summary.efficiency == StubEfficiency.NO_DATA
    assert summary.n_cluster_diff == 2
    names = [n for n, _ in sink.values]
    assert "StubInfo/stubEffC1" not in names
    assert ("StubInfo/nclusterdiffC1", 2) in sink.values
    assert ("StubInfo/nstubC1", 0) in sink.values


def test_find_stubs_fills_histogram_store():
    store = HistogramStore()
    store.book("StubInfo/nclusterdiffC0", 10, -0.5, 9.5)
    store.book("StubInfo/nstubC0", 10, -0.5, 9.5)
    store.book("StubInfo/stubEffC0", 2, -0.5, 1.5)
    find_stubs(make_map([5.0], [5.0]), Column.C0, 0, store)
    find_stubs(make_map([5.0], [9.0]), Column.C0, 0, store)
    eff = store.get("StubInfo/stubEffC0")
    assert eff.entries == 2
    assert eff.bin_content(1) == 1
    assert eff.bin_content(0) == 1
