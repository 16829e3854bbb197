"""
Per-event working state: column channel lists, cluster maps, stubs and
decoded stub words. Follows a clear_event() -> fill() -> read cycle.
"""

from stub_analysis.event_model import ALL_CLUSTER_KEYS, ClusterKey, ClusterMap, Column, Layer
from stub_analysis.filters.remap_channels import (
    mask_hits, split_columns,
    mask_clusters, split_cluster_columns,
    mask_stubs, split_stub_columns,
    correct_hit_order,
)
from stub_analysis.filters.stub_word import ChipStubMap, read_stub_word


class EventState:

    def __init__(self):
        self.channels = {key: [] for key in ALL_CLUSTER_KEYS}
        self.reco_clusters = ClusterMap()
        self.offline_clusters = ClusterMap()
        self.reco_stubs = {col: [] for col in Column}
        self.reco_stub_chips = ChipStubMap()
        self.cbc_stub_chips = ChipStubMap()
        self.n_stubs_reco_sword = 0
        self.n_stubs_cbc_sword = 0

    def clear_event(self):
        for chans in self.channels.values():
            chans.clear()
        self.reco_clusters.clear_event()
        self.offline_clusters.clear_event()
        for stubs in self.reco_stubs.values():
            stubs.clear()
        self.reco_stub_chips.clear_event()
        self.cbc_stub_chips.clear_event()
        self.n_stubs_reco_sword = 0
        self.n_stubs_cbc_sword = 0

    def is_empty(self):
        return (
            not any(self.channels.values())
            and self.reco_clusters.n_clusters() == 0
            and self.offline_clusters.n_clusters() == 0
            and not any(self.reco_stubs.values())
            and self.reco_stub_chips.is_empty()
            and self.cbc_stub_chips.is_empty()
            and self.n_stubs_reco_sword == 0
            and self.n_stubs_cbc_sword == 0
        )

    def fill(self, record, mask=None, hit_order_correction=False):
        """
        Load one event: mask, split into columns, decode stub words.

        Masking is applied to raw hits, reconstructed clusters and stubs
        before anything is clustered. Offline clusters are not built here.

        Args:
            record (EventRecord): event from the source
            mask (ChannelMask): masked positions, or None for no masking
            hit_order_correction (bool): flip CBC strip order of raw hits
        """
        for layer in Layer:
            chans = record.channels.get(layer, [])
            if hit_order_correction:
                chans = correct_hit_order(chans)
            if mask is not None:
                chans = mask_hits(chans, mask.for_layer(layer))
            col0, col1 = split_columns(chans)
            self.channels[ClusterKey(layer, Column.C0)].extend(col0)
            self.channels[ClusterKey(layer, Column.C1)].extend(col1)

            clusters = record.clusters.get(layer, [])
            if mask is not None:
                clusters = mask_clusters(clusters, mask.for_layer(layer))
            col0, col1 = split_cluster_columns(clusters)
            self.reco_clusters.extend(ClusterKey(layer, Column.C0), col0)
            self.reco_clusters.extend(ClusterKey(layer, Column.C1), col1)

        stubs = record.stubs
        if mask is not None:
            # det1 is the seeding layer
            stubs = mask_stubs(stubs, mask.for_layer(Layer.DET1))
        col0, col1 = split_stub_columns(stubs)
        self.reco_stubs[Column.C0].extend(col0)
        self.reco_stubs[Column.C1].extend(col1)

        self.n_stubs_reco_sword += read_stub_word(self.reco_stub_chips, record.stub_word_reco)
        self.n_stubs_cbc_sword += read_stub_word(self.cbc_stub_chips, record.stub_word_cbc)

    def column_channels(self, layer, column):
        return self.channels[ClusterKey(layer, column)]
