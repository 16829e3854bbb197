from stub_analysis.run_stub_analysis import analyze_event, book_histograms
from stub_analysis.event_model import EventRecord, Layer
from stub_analysis.event_state import EventState
from stub_analysis.scripts.plot_stub_info import plot_stub_info
from stub_analysis.scripts.stub_efficiency_summary import summarize
from stub_analysis.utils.histograms import HistogramStore


def write_hist_file(path):
    store = book_histograms(HistogramStore())
    state = EventState()
    for det1 in ([20, 21], [300]):
        record = EventRecord(channels={Layer.DET0: [20], Layer.DET1: det1})
        analyze_event(record, state, store, stub_window=1)
    store.write_root(path)


def test_summarize_writes_tsv(tmp_path):
    hist_file = str(tmp_path / "hists.root")
    write_hist_file(hist_file)
    out = tmp_path / "eff.tsv"
    df = summarize(hist_file, str(out))
    assert out.exists()
    assert list(df["column"]) == ["C0", "C1"]
    assert df.iloc[0]["n_stub_found"] == 1
    assert df.iloc[0]["n_events"] == 2


def test_plot_stub_info_creates_pngs(tmp_path):
    hist_file = str(tmp_path / "hists.root")
    write_hist_file(hist_file)
    folder = tmp_path / "plots"
    plot_stub_info(hist_file, str(folder))
    assert (folder / "nstub_C0.png").exists()
    assert (folder / "clusterWidth_det1_C1.png").exists()
