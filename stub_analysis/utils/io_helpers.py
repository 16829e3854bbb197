import logging

import numpy as np
import uproot

from stub_analysis.event_model import Cluster, EventRecord, Layer, Stub

LOGGER = logging.getLogger(__name__)

TREE_NAME = "analysisTree"

BRANCHES = [
    "det0_channel", "det1_channel",
    "det0_cluster_x", "det0_cluster_width",
    "det1_cluster_x", "det1_cluster_width",
    "stub_x", "stubWordReco", "stubWord",
    "tel_dxdz", "tel_xPos",
    "periodicityFlag", "goodEventFlag",
    "cwdWord", "windowWord",
]


class SourceUnavailable(RuntimeError):
    """Input file or analysis tree could not be opened."""


def open_tree(input_file, tree_name=TREE_NAME):
    try:
        fin = uproot.open(input_file)
    except (OSError, ValueError) as exc:
        raise SourceUnavailable(f"File {input_file} could not be opened: {exc}") from exc
    if tree_name not in fin:
        raise SourceUnavailable(f"Could not find '{tree_name}' in {input_file}")
    return fin[tree_name]


def found_branches(tree):
    """Branches of BRANCHES present in the tree; missing ones are reported."""
    keys = set(tree.keys())
    found = []
    for b in BRANCHES:
        if b in keys:
            LOGGER.info(">>> Branch <%s> found", b)
            found.append(b)
        else:
            LOGGER.warning(">>> Branch <%s> not found, using empty default", b)
    return found


def _int_list(arr):
    return [int(x) for x in arr]


def _clusters(xs, widths):
    return [Cluster(position=float(x), width=int(w)) for x, w in zip(xs, widths)]


def record_from_entry(entry):
    """
    Build an EventRecord from one entry's {branch: value} mapping.

    Missing branches fall back to the EventRecord defaults.
    """
    empty = np.empty(0)
    record = EventRecord(
        channels={
            Layer.DET0: _int_list(entry.get("det0_channel", empty)),
            Layer.DET1: _int_list(entry.get("det1_channel", empty)),
        },
        clusters={
            Layer.DET0: _clusters(entry.get("det0_cluster_x", empty), entry.get("det0_cluster_width", empty)),
            Layer.DET1: _clusters(entry.get("det1_cluster_x", empty), entry.get("det1_cluster_width", empty)),
        },
        stubs=[Stub(position=float(x)) for x in entry.get("stub_x", empty)],
        stub_word_reco=int(entry.get("stubWordReco", 0)),
        stub_word_cbc=int(entry.get("stubWord", 0)),
        tel_dxdz=[float(x) for x in entry.get("tel_dxdz", empty)],
        tel_x_pos=[float(x) for x in entry.get("tel_xPos", empty)],
        periodicity=bool(entry.get("periodicityFlag", False)),
        good=bool(entry.get("goodEventFlag", False)),
    )
    if "cwdWord" in entry and "windowWord" in entry:
        record.cwd_word = int(entry["cwdWord"])
        record.window_word = int(entry["windowWord"])
    return record


def iter_events(input_file, tree_name=TREE_NAME, max_events=None, step_size=1000):
    """
    Yield one EventRecord per tree entry.

    Args:
        input_file (str): ROOT file with the flat analysis tree
        tree_name (str): tree to read
        max_events (int): stop after this many entries (all if None)
        step_size (int): entries read per uproot batch

    Raises:
        SourceUnavailable: file or tree missing (raised before the first event)
    """
    tree = open_tree(input_file, tree_name)
    branches = found_branches(tree)
    if not branches:
        raise SourceUnavailable(f"No analysis branches in '{tree_name}' of {input_file}")
    return _iter_entries(tree, branches, max_events, step_size)


def _iter_entries(tree, branches, max_events, step_size):
    for batch in tree.iterate(branches, library="np", step_size=step_size, entry_stop=max_events):
        n_entries = len(batch[branches[0]])
        for i in range(n_entries):
            yield record_from_entry({b: batch[b][i] for b in branches})
