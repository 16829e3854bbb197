import argparse

import numpy as np
import pandas as pd
import uproot

from stub_analysis.event_model import Column


def column_efficiency(counts, edges):
    """
    Stub efficiency from a stubEff histogram (entries at 0 and 1).

    Returns:
        tuple[float, int, int]: (efficiency, n_stub_found, n_events); NaN if empty
    """
    centers = 0.5 * (edges[:-1] + edges[1:])
    n_found = int(counts[np.isclose(centers, 1.0)].sum())
    n_events = int(counts.sum())
    eff = n_found / n_events if n_events else float("nan")
    return eff, n_found, n_events


def efficiency_table(hists):
    """
    Args:
        hists: mapping histogram name -> (counts, edges)

    Returns:
        pd.DataFrame: one row per column
    """
    rows = []
    for col in Column:
        name = f"StubInfo/stubEff{col.value}"
        if name not in hists:
            continue
        counts, edges = hists[name]
        eff, n_found, n_events = column_efficiency(np.asarray(counts), np.asarray(edges))
        rows.append({
            "column": col.value,
            "n_events": n_events,
            "n_stub_found": n_found,
            "efficiency": eff,
        })
    return pd.DataFrame(rows, columns=["column", "n_events", "n_stub_found", "efficiency"])


def read_stub_eff_hists(hist_file):
    hists = {}
    with uproot.open(hist_file) as fin:
        for col in Column:
            name = f"StubInfo/stubEff{col.value}"
            if name in fin:
                hists[name] = fin[name].to_numpy()
    return hists


def summarize(hist_file, output_path="stub_efficiency.tsv"):
    df = efficiency_table(read_stub_eff_hists(hist_file))
    df.to_csv(output_path, sep="\t", index=False)
    print(df.to_string(index=False))
    print(f"[INFO] Stub efficiency summary written to {output_path}")
    return df


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Stub efficiency per column from a histogram file.")
    parser.add_argument("hist_file", type=str, help="Output of run_stub_analysis")
    parser.add_argument("--output", type=str, default="stub_efficiency.tsv",
                        help="TSV output path (default: stub_efficiency.tsv)")
    args = parser.parse_args()
    summarize(args.hist_file, args.output)
