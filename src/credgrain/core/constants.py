"""
credgrain core defaults.

Defines CredRank parameter defaults, solver limits, and grain precision consumed by
settings loaders and downstream layers. This module is zero-IO and uses only the Python
standard library.

Notes:
    - credgrain.io.config.CredgrainSettings sources its defaults from here.
    - alpha + beta must stay <= 1; the remainder is the mass carried by graph edges.
    - Grain is fixed point: one whole grain is 10**GRAIN_DECIMAL_PRECISION raw units.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_ALPHA",
    "DEFAULT_BETA",
    "DEFAULT_GAMMA_FORWARD",
    "DEFAULT_GAMMA_BACKWARD",
    "DEFAULT_CONVERGENCE_THRESHOLD",
    "DEFAULT_MAX_ITERATIONS",
    "TRANSITION_TOLERANCE",
    "GRAIN_DECIMAL_PRECISION",
    "WEEK_MS",
]

# Teleportation mass sent from every node to the seed nodes.
DEFAULT_ALPHA: float = 0.1

# Retention mass carried along a participant's epoch chain.
DEFAULT_BETA: float = 0.4

# Direction scales applied to forwards/backwards edge weights before renormalization.
DEFAULT_GAMMA_FORWARD: float = 0.1
DEFAULT_GAMMA_BACKWARD: float = 0.1

# Power iteration stops once the L-infinity step distance drops below this.
DEFAULT_CONVERGENCE_THRESHOLD: float = 1e-7
DEFAULT_MAX_ITERATIONS: int = 255

# Allowed deviation of a node's outgoing transition mass from 1.
TRANSITION_TOLERANCE: float = 1e-9

GRAIN_DECIMAL_PRECISION: int = 18

WEEK_MS: int = 7 * 24 * 60 * 60 * 1000
