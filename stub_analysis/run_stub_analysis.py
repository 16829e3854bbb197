"""
Run the stub analysis pipeline: mask -> cluster -> stubs -> histograms.
"""

import argparse
import itertools
import logging
import time

from stub_analysis.ana_constants import (
    DEFAULT_STUB_WINDOW, Z_DUT0, Z_DUT1, Z_FEI4,
    HIT_BINNING, NHIT_BINNING, NCLUSTER_BINNING, CLUSTER_WIDTH_BINNING,
    NSTUB_BINNING, EFF_BINNING, TRACK_POS_BINNING,
)
from stub_analysis.event_model import ClusterKey, Column, Layer
from stub_analysis.event_state import EventState
from stub_analysis.filters.cluster_hits import fill_cluster_map
from stub_analysis.filters.stub_finder import find_stubs
from stub_analysis.filters.stub_word import decode_cbc_config
from stub_analysis.filters.track_extrapolation import extrapolate_tracks
from stub_analysis.geom.channel_mask import load_channel_mask
from stub_analysis.utils.histograms import HistogramStore
from stub_analysis.utils.io_helpers import iter_events

LOGGER = logging.getLogger(__name__)


def book_histograms(store):
    """Book every histogram analyze_event() fills."""
    for layer in Layer:
        det = layer.value
        for col in Column:
            c = col.value
            store.book(f"{det}/hitmap{c}", *HIT_BINNING)
            store.book(f"{det}/nhits{c}", *NHIT_BINNING)
            store.book(f"{det}/ncluster{c}", *NCLUSTER_BINNING)
            store.book(f"{det}/clusterWidth{c}", *CLUSTER_WIDTH_BINNING)
            store.book(f"{det}/clusterPos{c}", *HIT_BINNING)
            store.book(f"{det}/nrecoCluster{c}", *NCLUSTER_BINNING)
    for col in Column:
        c = col.value
        store.book(f"StubInfo/nclusterdiff{c}", *NCLUSTER_BINNING)
        store.book(f"StubInfo/nstub{c}", *NSTUB_BINNING)
        store.book(f"StubInfo/stubEff{c}", *EFF_BINNING)
        store.book(f"StubInfo/nrecoStub{c}", *NSTUB_BINNING)
    store.book("StubInfo/nStubsRecoSword", *NSTUB_BINNING)
    store.book("StubInfo/nStubsCbcSword", *NSTUB_BINNING)
    store.book("StubInfo/nStubDiffRecoCbc", 41, -20.5, 20.5)
    store.book("TelescopeAnalysis/nTracks", *NSTUB_BINNING)
    store.book("TelescopeAnalysis/xTkAtDUT0", *TRACK_POS_BINNING)
    store.book("TelescopeAnalysis/xTkAtDUT1", *TRACK_POS_BINNING)
    return store


def fill_cluster_info(clusters, det, col, sink):
    sink.record(f"{det}/ncluster{col}", len(clusters))
    for c in clusters:
        sink.record(f"{det}/clusterWidth{col}", c.width)
        sink.record(f"{det}/clusterPos{col}", c.position)


def analyze_event(record, state, sink, mask=None, **kwargs):
    """
    Process one event into the histogram sink.

    Args:
        record (EventRecord): event from the source
        state (EventState): per-event accumulators, cleared here first
        sink: object with record(name, value)
        mask (ChannelMask): channel mask, None to disable masking

    Keyword flags:
        stub_window (int): stub window in channels
        tel_matching (bool): extrapolate telescope tracks
        hit_order_correction (bool): flip CBC strip order of raw hits

    Returns:
        dict: per-column StubSummary plus extrapolated tracks (or None)
    """
    stub_window = kwargs.get("stub_window", DEFAULT_STUB_WINDOW)

    state.clear_event()
    state.fill(record, mask=mask, hit_order_correction=kwargs.get("hit_order_correction", False))

    for layer in Layer:
        det = layer.value
        for col in Column:
            c = col.value
            chans = state.column_channels(layer, col)
            sink.record(f"{det}/nhits{c}", len(chans))
            for ch in chans:
                sink.record(f"{det}/hitmap{c}", ch)

            clusters = fill_cluster_map(state.offline_clusters, layer, col, chans)
            fill_cluster_info(clusters, det, c, sink)
            sink.record(f"{det}/nrecoCluster{c}", len(state.reco_clusters[ClusterKey(layer, col)]))

    summaries = {}
    for col in Column:
        summaries[col] = find_stubs(state.offline_clusters, col, stub_window, sink)
        sink.record(f"StubInfo/nrecoStub{col.value}", len(state.reco_stubs[col]))

    sink.record("StubInfo/nStubsRecoSword", state.n_stubs_reco_sword)
    sink.record("StubInfo/nStubsCbcSword", state.n_stubs_cbc_sword)
    sink.record("StubInfo/nStubDiffRecoCbc", state.n_stubs_reco_sword - state.n_stubs_cbc_sword)

    tracks = None
    if kwargs.get("tel_matching", False) and record.has_telescope:
        tracks = extrapolate_tracks(
            record.tel_dxdz, record.tel_x_pos,
            z_dut0=kwargs.get("z_dut0", Z_DUT0),
            z_dut1=kwargs.get("z_dut1", Z_DUT1),
            z_ref=kwargs.get("z_ref", Z_FEI4),
        )
        sink.record("TelescopeAnalysis/nTracks", len(tracks[0]))
        for x0, x1 in zip(*tracks):
            sink.record("TelescopeAnalysis/xTkAtDUT0", x0)
            sink.record("TelescopeAnalysis/xTkAtDUT1", x1)

    return {"stubs": summaries, "tracks": tracks}


def resolve_stub_window(first_record, **kwargs):
    """
    Stub window used for every event of a run: the stub_window flag if set,
    else the CBC condition words of the first event, else the default.
    """
    if kwargs.get("stub_window") is not None:
        return kwargs["stub_window"]
    if first_record is not None and first_record.cwd_word is not None:
        cbc = decode_cbc_config(first_record.cwd_word, first_record.window_word)
        LOGGER.info("Stub window from CBC config: %d (offsets %d, %d; cwd %d)", *cbc)
        return cbc.stub_window
    LOGGER.info("No CBC config in first event, stub window %d", DEFAULT_STUB_WINDOW)
    return DEFAULT_STUB_WINDOW


def run_analysis(input_file, output_file, mask_file=None, **kwargs):
    """
    Read the analysis tree, run analyze_event() on each event and write the
    histograms to a new ROOT file.

    Keyword flags:
        masking (bool): apply the channel mask from mask_file
        good_only (bool): skip events without the good-event flag
        max_events (int): stop after this many entries
        stub_window (int): stub window for the whole run; see resolve_stub_window()

    Returns:
        HistogramStore
    """
    total_start = time.perf_counter()

    # open the source first: a missing file is the only hard stop
    events = iter_events(input_file, max_events=kwargs.get("max_events"))

    mask = None
    if kwargs.get("masking", False):
        mask = load_channel_mask(mask_file)

    store = book_histograms(HistogramStore())
    state = EventState()

    first = next(events, None)
    kwargs["stub_window"] = resolve_stub_window(first, **kwargs)
    if first is not None:
        events = itertools.chain([first], events)

    n_read = 0
    n_used = 0
    process_start = time.perf_counter()
    for record in events:
        n_read += 1
        if kwargs.get("good_only", False) and not record.good:
            continue
        analyze_event(record, state, store, mask=mask, **kwargs)
        n_used += 1
    process_end = time.perf_counter()

    write_start = time.perf_counter()
    store.write_root(output_file)
    write_end = time.perf_counter()

    total_end = time.perf_counter()

    print(f"Events read: {n_read}, analyzed: {n_used}")
    for col in Column:
        eff = store.get(f"StubInfo/stubEff{col.value}")
        if eff.entries:
            print(f"Stub efficiency {col.value}: {eff.bin_content(1) / eff.entries:.2%} ({eff.entries} events)")
    print("\n--- Timing Summary ---")
    print(f"Analysis time: {process_end - process_start:.2f} s")
    print(f"Write time:    {write_end - write_start:.2f} s")
    print(f"Total runtime: {total_end - total_start:.2f} s")
    return store


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Cluster and stub analysis of beam test DUT data.")
    parser.add_argument("--input_file", type=str, required=True, help="Input ROOT file with the analysis tree")
    parser.add_argument("--output_file", type=str, default="stub_analysis_hists.root",
                        help="Output ROOT file for histograms (default: stub_analysis_hists.root)")
    parser.add_argument("--mask_file", type=str, default=None, help="Channel mask file (chipId:ch1,ch2,...)")
    parser.add_argument("--stub_window", type=int, default=None,
                        help="Stub window in channels (default: from CBC config, else %d)" % DEFAULT_STUB_WINDOW)
    parser.add_argument("--max_events", type=int, default=None, help="Number of events to analyze (default: all)")
    parser.add_argument("--tel_matching", action="store_true", help="Extrapolate telescope tracks to the DUT planes")
    parser.add_argument("--good_only", action="store_true", help="Only use events with the good-event flag")
    parser.add_argument("--hit_order_correction", action="store_true", help="Flip CBC strip order of raw hits")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    options = dict(
        masking=args.mask_file is not None,
        tel_matching=args.tel_matching,
        good_only=args.good_only,
        hit_order_correction=args.hit_order_correction,
        max_events=args.max_events,
    )
    if args.stub_window is not None:
        options["stub_window"] = args.stub_window

    run_analysis(args.input_file, args.output_file, mask_file=args.mask_file, **options)
