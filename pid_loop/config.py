# config.py
# Default settings shared by the controller and the simulation harness.

import numpy as np

# ===== Sampling =====
# Nominal time between control ticks, in seconds.
DEFAULT_SAMPLE_PERIOD = 1.0

# Relative slack on the gating check, so timestamps computed as i * period
# are not treated as early by a rounding error.
GATE_TOLERANCE = 1e-9

# ===== Output Limits =====
# Full float32 range, i.e. effectively unbounded until set_output_limits() is called.
FLOAT32_MIN = float(np.finfo(np.float32).min)
FLOAT32_MAX = float(np.finfo(np.float32).max)
DEFAULT_OUTPUT_LIMITS = (FLOAT32_MIN, FLOAT32_MAX)


# ===== Simulation =====
SIM_DT = 1.0  # plant time step
SIM_MASS = 1.0
SIM_DRAG = 0.1
SIM_ACTUATOR_GAIN = 1.0
