# utils/histograms.py

import logging

import numpy as np
import uproot

LOGGER = logging.getLogger(__name__)


class Histogram1D:
    """Fixed-binning 1D histogram with under/overflow, filled one value at a time."""

    def __init__(self, name, nbins, lo, hi):
        self.name = name
        self.edges = np.linspace(lo, hi, nbins + 1)
        self.counts = np.zeros(nbins, dtype=np.float64)
        self.underflow = 0.0
        self.overflow = 0.0
        self.entries = 0
        self.skipped = 0

    def fill(self, value, weight=1.0):
        if not np.isfinite(value):
            LOGGER.debug("Histogram <%s>: skipping non-finite value %r", self.name, value)
            self.skipped += 1
            return False
        self.entries += 1
        if value < self.edges[0]:
            self.underflow += weight
        elif value >= self.edges[-1]:
            self.overflow += weight
        else:
            ibin = np.searchsorted(self.edges, value, side="right") - 1
            self.counts[ibin] += weight
        return True

    def bin_content(self, value):
        """Content of the bin holding value (0 outside the range)."""
        if not np.isfinite(value) or value < self.edges[0] or value >= self.edges[-1]:
            return 0.0
        return float(self.counts[np.searchsorted(self.edges, value, side="right") - 1])

    def to_numpy(self):
        return self.counts.copy(), self.edges.copy()


class HistogramStore:
    """
    Named histogram pool. Histograms are booked up front and then filled by
    name through record(); filling an unbooked name is reported and skipped.
    """

    def __init__(self):
        self._hists = {}

    def book(self, name, nbins, lo, hi):
        if name in self._hists:
            LOGGER.debug("Histogram <%s> already booked, keeping existing", name)
            return self._hists[name]
        hist = Histogram1D(name, nbins, lo, hi)
        self._hists[name] = hist
        return hist

    def get(self, name):
        hist = self._hists.get(name)
        if hist is None:
            LOGGER.warning("Histogram <%s> not found!", name)
        return hist

    def record(self, name, value):
        hist = self.get(name)
        if hist is None:
            return False
        return hist.fill(value)

    def names(self):
        return list(self._hists)

    def __contains__(self, name):
        return name in self._hists

    def __len__(self):
        return len(self._hists)

    def write_root(self, output_file):
        """
        Write all histograms to a ROOT file; 'dir/name' keys become directories.
        """
        with uproot.recreate(output_file) as fout:
            for name, hist in self._hists.items():
                fout[name] = hist.to_numpy()
        print(f"Wrote {len(self._hists)} histograms to '{output_file}'")
