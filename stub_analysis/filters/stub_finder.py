"""
Offline stub finding: det0/det1 cluster coincidences within a window.
"""

from collections import namedtuple
from enum import IntEnum

from stub_analysis.event_model import ClusterKey, Layer

StubSummary = namedtuple("StubSummary", ["n_stubs", "n_cluster_diff", "efficiency"])


class StubEfficiency(IntEnum):
    NO_DATA = -1    # a layer has no cluster, event not in the denominator
    NO_STUB = 0
    STUB_FOUND = 1


def count_stubs(det0_clusters, det1_clusters, window):
    """
    Count every (det0, det1) cluster pair with |x0 - x1| <= window.

    Pairs are not exclusive: one cluster can take part in several stubs.
    """
    n_stubs = 0
    for c0 in det0_clusters:
        for c1 in det1_clusters:
            if abs(c0.position - c1.position) <= window:
                n_stubs += 1
    return n_stubs


def stub_efficiency(n_det0, n_det1, n_stubs):
    if n_det0 == 0 or n_det1 == 0:
        return StubEfficiency.NO_DATA
    return StubEfficiency.STUB_FOUND if n_stubs > 0 else StubEfficiency.NO_STUB


def find_stubs(cluster_map, column, window, sink=None):
    """
    Find stubs in one column and record the stub histograms.

    Args:
        cluster_map (ClusterMap): clusters of the current event
        column (Column): column to look at
        window (int): stub window in channels, inclusive
        sink: object with record(name, value); skipped when None

    Returns:
        StubSummary
    """
    det0 = cluster_map[ClusterKey(Layer.DET0, column)]
    det1 = cluster_map[ClusterKey(Layer.DET1, column)]
    col = column.value

    n_cluster_diff = abs(len(det0) - len(det1))
    n_stubs = count_stubs(det0, det1, window)
    efficiency = stub_efficiency(len(det0), len(det1), n_stubs)

    if sink is not None:
        sink.record(f"StubInfo/nclusterdiff{col}", n_cluster_diff)
        sink.record(f"StubInfo/nstub{col}", n_stubs)
        if efficiency is not StubEfficiency.NO_DATA:
            sink.record(f"StubInfo/stubEff{col}", int(efficiency))

    return StubSummary(n_stubs, n_cluster_diff, efficiency)
