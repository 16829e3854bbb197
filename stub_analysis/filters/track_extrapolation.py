import logging

import numpy as np

from stub_analysis.ana_constants import Z_DUT0, Z_DUT1, Z_FEI4

LOGGER = logging.getLogger(__name__)


def extrapolate_tracks(dxdz, x_pos, z_dut0=Z_DUT0, z_dut1=Z_DUT1, z_ref=Z_FEI4):
    """
    Project telescope tracks onto the two DUT planes.

    A track is kept only if neither of its projections is already in the
    output; tracks from degenerate fits land on identical positions.

    Args:
        dxdz (list[float]): track slopes
        x_pos (list[float]): track x at the reference plane
        z_dut0, z_dut1, z_ref (float): plane z positions

    Returns:
        tuple[list[float], list[float]]: index-aligned x at DUT0 and DUT1
    """
    slopes = np.asarray(dxdz, dtype=np.float64)
    xs = np.asarray(x_pos, dtype=np.float64)
    if slopes.size != xs.size:
        LOGGER.warning("Telescope slope and position arrays differ in length (%d vs %d)", slopes.size, xs.size)
        n_tracks = min(slopes.size, xs.size)
        slopes, xs = slopes[:n_tracks], xs[:n_tracks]

    x_dut0 = ((z_dut0 - z_ref) * slopes + xs).tolist()
    x_dut1 = ((z_dut1 - z_ref) * slopes + xs).tolist()

    xtk_dut0, xtk_dut1 = [], []
    for x0, x1 in zip(x_dut0, x_dut1):
        if x0 not in xtk_dut0 and x1 not in xtk_dut1:
            xtk_dut0.append(x0)
            xtk_dut1.append(x1)
    return xtk_dut0, xtk_dut1
