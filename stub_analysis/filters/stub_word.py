"""
Decoding of the CBC stub word and of the CBC condition words.

Stub word layout: bit i set means CBC i reported a stub. CBCs 0-7 read
column C0 and CBCs 8-15 column C1.
"""

from collections import Counter, namedtuple

from stub_analysis.ana_constants import N_CBC, N_CBC_PER_COLUMN
from stub_analysis.event_model import Column

CbcConfig = namedtuple("CbcConfig", ["stub_window", "offset1", "offset2", "cluster_width_discrimination"])


def chip_column(chip_id):
    return Column.C0 if chip_id < N_CBC_PER_COLUMN else Column.C1


class ChipStubMap:
    """Per-column stub counts by CBC id, accumulated over one event."""

    def __init__(self):
        self._counts = {col: Counter() for col in Column}

    def __getitem__(self, column):
        return self._counts[column]

    def add(self, chip_id):
        self._counts[chip_column(chip_id)][chip_id] += 1

    def total(self, column=None):
        if column is not None:
            return sum(self._counts[column].values())
        return sum(sum(c.values()) for c in self._counts.values())

    def is_empty(self):
        return self.total() == 0

    def clear_event(self):
        for counts in self._counts.values():
            counts.clear()


def read_stub_word(chip_map, stub_word):
    """
    Decode one stub word into chip_map.

    Args:
        chip_map (ChipStubMap): accumulator for the current event
        stub_word (int): packed word, one bit per CBC

    Returns:
        int: number of stubs decoded from this word
    """
    if not stub_word:
        return 0
    n_stubs = 0
    for chip_id in range(N_CBC):
        if (int(stub_word) >> chip_id) & 1:
            chip_map.add(chip_id)
            n_stubs += 1
    return n_stubs


def decode_cbc_config(cwd_word, window_word):
    """
    Unpack the CBC stub logic settings from the condition words.

    Offsets are 2-bit magnitudes with a sign bit above each.
    """
    stub_window = window_word >> 4
    offset1 = cwd_word % 4
    if (cwd_word >> 2) % 2:
        offset1 = -offset1
    offset2 = (cwd_word >> 3) % 4
    if (cwd_word >> 5) % 2:
        offset2 = -offset2
    cwd = (cwd_word >> 6) % 4
    return CbcConfig(stub_window, offset1, offset2, cwd)
