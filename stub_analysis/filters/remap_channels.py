"""
Channel masking and column splitting for one layer.
"""

from stub_analysis.ana_constants import COLUMN_SPLIT, N_STRIPS_PER_CBC


def mask_hits(channels, masked):
    """
    Drop masked channels, keeping scan order.

    Args:
        channels (list[int]): layer-global channel indices
        masked (set[int]): masked positions for this layer

    Returns:
        list[int]
    """
    return [ch for ch in channels if ch not in masked]


def split_columns(channels):
    """
    Split layer channels into column 0 and column 1 lists.

    Column 1 channels are rebased to start at 0.

    Returns:
        tuple[list[int], list[int]]: (column 0, column 1)
    """
    col0, col1 = [], []
    for ch in channels:
        ch = int(ch)
        if ch < COLUMN_SPLIT:
            col0.append(ch)
        else:
            col1.append(ch - COLUMN_SPLIT)
    return col0, col1


def mask_clusters(clusters, masked):
    """Drop clusters whose centroid sits on a masked position."""
    return [c for c in clusters if c.position not in masked]


def split_cluster_columns(clusters):
    """
    Split reconstructed clusters by column; column 1 centroids are rebased
    so both columns fill the same 0..1015 range. A centroid above 1015 is in
    column 1 even when it straddles the boundary (1015.5 -> -0.5).
    """
    col0, col1 = [], []
    for c in clusters:
        if c.position <= COLUMN_SPLIT - 1:
            col0.append(c)
        else:
            col1.append(c._replace(position=c.position - COLUMN_SPLIT))
    return col0, col1


def mask_stubs(stubs, masked):
    """
    Drop stubs on masked positions. Callers pass the det1 mask since det1 is
    the stub seeding layer.
    """
    return [s for s in stubs if s.position not in masked]


def split_stub_columns(stubs):
    col0, col1 = [], []
    for s in stubs:
        if s.position <= COLUMN_SPLIT - 1:
            col0.append(s)
        else:
            col1.append(s)
    return col0, col1


def correct_hit_order(channels):
    """
    Reverse strip order within a pair of CBCs (readout order is mirrored
    with respect to the sensor for the first 254 strips).
    """
    return [
        (N_STRIPS_PER_CBC - 1) - ch if ch < N_STRIPS_PER_CBC
        else N_STRIPS_PER_CBC + (2 * N_STRIPS_PER_CBC - 1 - ch)
        for ch in channels
    ]
