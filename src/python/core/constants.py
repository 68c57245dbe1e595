"""
===============================================================================
SWING-TWIST PROJECT - Numerical Constants
===============================================================================
Central repository for the tolerances and angle conversions used by the
rotation decomposition and its verification harness. All angles are in
radians unless a name says otherwise.
===============================================================================
"""

import numpy as np


# =============================================================================
# MATHEMATICAL CONSTANTS
# =============================================================================
PI = np.pi
RAD2DEG = 180.0 / PI

# =============================================================================
# DECOMPOSITION TOLERANCES
# =============================================================================
# Relative tolerance used to decide whether the rotated reference direction
# is parallel (Case A) or anti-parallel (Case B) to the original one.
DIRECTION_TOLERANCE = 1e-10

# Below this magnitude a direction or quaternion is treated as zero.
ZERO_NORM_TOLERANCE = 1e-12

# =============================================================================
# VERIFICATION TOLERANCES
# =============================================================================
UNIT_NORM_TOLERANCE = 1e-10            # | |p| - 1 |, | |q| - 1 |
RECONSTRUCTION_TOLERANCE = 1e-9        # min(|pq - r|, |pq + r|)
FIXED_AXIS_TOLERANCE = 1e-9            # |q e_q - e_q|
ORTHOGONALITY_TOLERANCE = 1e-10        # |e_p . e_q|

# =============================================================================
# VERIFICATION CAMPAIGN DEFAULTS
# =============================================================================
DEFAULT_RANDOM_TRIALS = 1000
DEFAULT_SEED = 42
