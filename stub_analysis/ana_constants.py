# ana_constants.py

# Readout geometry: two CBC columns per layer, 8 chips per column
N_CHANNELS = 2032       # strips per layer, both columns
COLUMN_SPLIT = 1016     # first channel of column 1
N_CBC = 16
N_STRIPS_PER_CBC = 127
N_CBC_PER_COLUMN = 8

# Masking
MASK_HALF_WIDTH = 2     # masked neighbourhood is hitPos +/- this

# Stub finding
DEFAULT_STUB_WINDOW = 7  # channels

# Z positions (mm) along the beam line
Z_DUT0 = 435.0
Z_DUT1 = 438.0
Z_FEI4 = 0.0            # telescope reference plane

# Histogram binning: name suffix -> (nbins, lo, hi)
HIT_BINNING = (1016, -0.5, 1015.5)
NHIT_BINNING = (100, -0.5, 99.5)
NCLUSTER_BINNING = (50, -0.5, 49.5)
CLUSTER_WIDTH_BINNING = (20, -0.5, 19.5)
NSTUB_BINNING = (20, -0.5, 19.5)
EFF_BINNING = (2, -0.5, 1.5)
TRACK_POS_BINNING = (400, -20.0, 20.0)
