"""
Event-level data types shared by the filters and the pipeline driver.
"""

from collections import namedtuple
from dataclasses import dataclass, field
from enum import Enum


class Layer(Enum):
    DET0 = "det0"
    DET1 = "det1"


class Column(Enum):
    C0 = "C0"
    C1 = "C1"


class ClusterKey(namedtuple("ClusterKey", ["layer", "column"])):
    """(layer, column) pair; str() gives the histogram-style name, e.g. 'det0C0'."""
    __slots__ = ()

    def __str__(self):
        return f"{self.layer.value}{self.column.value}"


ALL_CLUSTER_KEYS = tuple(ClusterKey(layer, col) for layer in Layer for col in Column)

# position is the centroid in channel units, width the number of merged strips
Cluster = namedtuple("Cluster", ["position", "width"])

Stub = namedtuple("Stub", ["position"])


@dataclass
class EventRecord:
    """
    One entry of the analysis tree, as delivered by the event source.

    Channel and cluster positions are layer-global (0..2031). The record is
    read-only input; the pipeline never mutates it.
    """
    channels: dict = field(default_factory=lambda: {Layer.DET0: [], Layer.DET1: []})
    clusters: dict = field(default_factory=lambda: {Layer.DET0: [], Layer.DET1: []})
    stubs: list = field(default_factory=list)
    stub_word_reco: int = 0
    stub_word_cbc: int = 0
    tel_dxdz: list = field(default_factory=list)
    tel_x_pos: list = field(default_factory=list)
    periodicity: bool = False
    good: bool = False
    cwd_word: int = None
    window_word: int = None

    @property
    def has_telescope(self):
        return len(self.tel_dxdz) > 0


class ClusterMap:
    """
    Clusters of one event keyed by ClusterKey, in scan order.

    All four (layer, column) entries always exist so lookups never miss.
    """

    def __init__(self):
        self._clusters = {key: [] for key in ALL_CLUSTER_KEYS}

    def __getitem__(self, key):
        return self._clusters[key]

    def __iter__(self):
        return iter(self._clusters)

    def __len__(self):
        return len(self._clusters)

    def items(self):
        return self._clusters.items()

    def extend(self, key, clusters):
        self._clusters[key].extend(clusters)

    def n_clusters(self):
        return sum(len(v) for v in self._clusters.values())

    def clear_event(self):
        for clusters in self._clusters.values():
            clusters.clear()
