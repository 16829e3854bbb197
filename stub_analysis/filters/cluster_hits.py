import numpy as np
from numba import njit

from stub_analysis.event_model import Cluster, ClusterKey


def find_clusters(channels):
    """
    Python wrapper: groups a column's channels into runs of adjacent strips.

    Channels are expected in ascending order (as delivered by the readout).
    A new cluster starts whenever a channel is not exactly previous + 1.

    Args:
        channels (list[int] or np.ndarray): column-local channel indices

    Returns:
        list[Cluster]: clusters in scan order, position = mean of the run
    """
    chans = np.asarray(channels, dtype=np.int64)
    if chans.size == 0:
        return []
    if chans.size == 1:
        return [Cluster(position=float(chans[0]), width=1)]

    positions, widths = scan_adjacent_runs(chans)
    return [Cluster(position=float(p), width=int(w)) for p, w in zip(positions, widths)]


@njit
def scan_adjacent_runs(channels):
    n = channels.shape[0]
    positions = np.empty(n, dtype=np.float64)
    widths = np.empty(n, dtype=np.int64)
    n_clusters = 0

    width = 1
    pos_sum = float(channels[0])
    for i in range(1, n):
        ch = channels[i]
        if ch == channels[i - 1] + 1:
            width += 1
            pos_sum += ch
        else:
            positions[n_clusters] = pos_sum / width
            widths[n_clusters] = width
            n_clusters += 1
            width = 1
            pos_sum = float(ch)

    # flush the pending cluster
    positions[n_clusters] = pos_sum / width
    widths[n_clusters] = width
    n_clusters += 1

    return positions[:n_clusters], widths[:n_clusters]


def fill_cluster_map(cluster_map, layer, column, channels):
    """
    Cluster one column's channels and append them to the event's ClusterMap.

    Returns:
        list[Cluster]: the clusters just added
    """
    clusters = find_clusters(channels)
    cluster_map.extend(ClusterKey(layer, column), clusters)
    return clusters
