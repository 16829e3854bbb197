import awkward as ak
import numpy as np
import pytest
import uproot

from stub_analysis.event_model import Column, EventRecord, Layer
from stub_analysis.event_state import EventState
from stub_analysis.ana_constants import DEFAULT_STUB_WINDOW
from stub_analysis.run_stub_analysis import analyze_event, book_histograms, resolve_stub_window, run_analysis
from stub_analysis.scripts.stub_efficiency_summary import efficiency_table
from stub_analysis.utils.histograms import HistogramStore
from stub_analysis.utils.io_helpers import SourceUnavailable


def make_event(det0, det1, dxdz=(), xpos=()):
    return EventRecord(
        channels={Layer.DET0: list(det0), Layer.DET1: list(det1)},
        tel_dxdz=list(dxdz),
        tel_x_pos=list(xpos),
        good=True,
    )


def test_analyze_event_fills_stub_histograms():
    store = book_histograms(HistogramStore())
    state = EventState()
    result = analyze_event(make_event([10, 11, 1020], [11, 1030]), state, store, stub_window=2)

    assert result["stubs"][Column.C0].n_stubs == 1
    assert store.get("StubInfo/stubEffC0").bin_content(1) == 1
    # column 1: det0 at 4, det1 at 14 -> no stub
    assert store.get("StubInfo/stubEffC1").bin_content(0) == 1
    assert store.get("det0/nclusterC0").bin_content(1) == 1
    assert store.get("det0/clusterPosC0").bin_content(10.5) == 1
    assert result["tracks"] is None


def test_event_without_det1_clusters_not_in_efficiency():
    store = book_histograms(HistogramStore())
    analyze_event(make_event([10], []), EventState(), store)
    assert store.get("StubInfo/stubEffC0").entries == 0
    assert store.get("StubInfo/nstubC0").entries == 1


def test_tel_matching_records_tracks():
    store = book_histograms(HistogramStore())
    result = analyze_event(
        make_event([1], [1], dxdz=[0.0, 0.0], xpos=[1.0, 1.0]),
        EventState(), store, tel_matching=True,
    )
    assert result["tracks"] == ([1.0], [1.0])
    assert store.get("TelescopeAnalysis/nTracks").bin_content(1) == 1


def test_efficiency_table_from_store():
    store = book_histograms(HistogramStore())
    state = EventState()
    analyze_event(make_event([10], [10]), state, store, stub_window=0)
    analyze_event(make_event([10], [30]), state, store, stub_window=0)
    hists = {name: store.get(name).to_numpy() for name in store.names()}
    df = efficiency_table(hists)
    row = df[df["column"] == "C0"].iloc[0]
    assert row["n_events"] == 2
    assert row["efficiency"] == pytest.approx(0.5)
    assert np.isnan(df[df["column"] == "C1"].iloc[0]["efficiency"])


def test_missing_input_is_fatal(tmp_path):
    with pytest.raises(SourceUnavailable):
        run_analysis(str(tmp_path / "missing.root"), str(tmp_path / "out.root"))


def write_analysis_tree(path):
    with uproot.recreate(path) as fout:
        fout["analysisTree"] = {
            "det0_channel": ak.Array([[5, 6, 7], [100], [1100]]),
            "det1_channel": ak.Array([[6], [386], []]),
            "stubWordReco": np.array([1, 0, 0], dtype=np.uint32),
            "stubWord": np.array([1, 0, 3], dtype=np.uint32),
            "goodEventFlag": np.array([True, True, False]),
        }


def test_run_analysis_end_to_end(tmp_path):
    in_file = str(tmp_path / "in.root")
    out_file = str(tmp_path / "out.root")
    mask_file = tmp_path / "mask.txt"
    mask_file.write_text("3:10\n")
    write_analysis_tree(in_file)

    store = run_analysis(in_file, out_file, mask_file=str(mask_file),
                         masking=True, good_only=True, stub_window=1)

    # event 3 is not good; det1 hit at 386 in event 2 is masked
    assert store.get("StubInfo/nstubC0").entries == 2
    assert store.get("StubInfo/stubEffC0").entries == 1
    assert store.get("StubInfo/stubEffC0").bin_content(1) == 1
    assert store.get("StubInfo/nStubsCbcSword").bin_content(1) == 1

    with uproot.open(out_file) as fin:
        counts, _ = fin["StubInfo/stubEffC0"].to_numpy()
    assert counts.sum() == 1


def test_stub_window_flag_wins():
    record = EventRecord(cwd_word=0, window_word=0x30)
    assert resolve_stub_window(record, stub_window=2) == 2


def test_stub_window_from_first_event_config():
    record = EventRecord(cwd_word=0, window_word=0x30)
    assert resolve_stub_window(record) == 3


def test_stub_window_default_without_config():
    assert resolve_stub_window(EventRecord()) == DEFAULT_STUB_WINDOW
    assert resolve_stub_window(None) == DEFAULT_STUB_WINDOW


def test_stub_window_fixed_for_whole_run(tmp_path):
    # window words change between events; the first event decides for the run
    in_file = str(tmp_path / "in.root")
    with uproot.recreate(in_file) as fout:
        fout["analysisTree"] = {
            "det0_channel": ak.Array([[10], [10]]),
            "det1_channel": ak.Array([[11], [15]]),
            "cwdWord": np.array([0, 0], dtype=np.uint32),
            "windowWord": np.array([0x10, 0x70], dtype=np.uint32),
        }
    store = run_analysis(in_file, str(tmp_path / "out.root"))
    eff = store.get("StubInfo/stubEffC0")
    assert eff.bin_content(1) == 1
    assert eff.bin_content(0) == 1
