import argparse
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import uproot

from stub_analysis.event_model import Column, Layer


def plot_hist(counts, edges, title, xlabel, out_path):
    plt.stairs(counts, edges, fill=True)
    plt.xlabel(xlabel)
    plt.ylabel("Counts")
    plt.title(title)
    plt.grid(True)
    plt.savefig(out_path, dpi=300)
    plt.close()


def plot_stub_info(hist_file, output_folder="stub_plots"):
    os.makedirs(output_folder, exist_ok=True)
    fin = uproot.open(hist_file)

    for col in Column:
        c = col.value
        name = f"StubInfo/nstub{c}"
        if name not in fin:
            print(f"[WARNING] {name} not in {hist_file}, skipping")
            continue
        counts, edges = fin[name].to_numpy()
        plot_hist(counts, edges, f"Stubs per event, column {c}", "N stubs",
                  f"{output_folder}/nstub_{c}.png")

        for layer in Layer:
            name = f"{layer.value}/clusterWidth{c}"
            if name not in fin:
                continue
            counts, edges = fin[name].to_numpy()
            plot_hist(counts, edges, f"Cluster width {layer.value} column {c}", "Width (strips)",
                      f"{output_folder}/clusterWidth_{layer.value}_{c}.png")
    print(f"[INFO] Plots saved in {output_folder}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Plot stub and cluster histograms.")
    parser.add_argument("hist_file", type=str, help="Output of run_stub_analysis")
    parser.add_argument("--output_folder", type=str, default="stub_plots")
    args = parser.parse_args()
    plot_stub_info(args.hist_file, args.output_folder)
