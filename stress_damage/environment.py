"""Environmental risk module.

Provides the three write-once environment tables:
  - Probability a predator is present, given the time since the last attack
  - Probability an attack kills, given the hormone level
  - Background mortality, given the damage level

Predator presence follows a two-state (present / absent) Markov chain that
is conditioned on not having been attacked. After an attack at t = 0 the
predator is known to be present; it then leaves with p_leave per step,
arrives with p_arrive, and attacks with p_attack when present.
"""

from __future__ import annotations

import numpy as np


# ═══════════════════════════════════════════════════════════════════════
# PREDATOR PRESENCE
# ═══════════════════════════════════════════════════════════════════════

def predator_presence(p_leave: float, p_arrive: float, p_attack: float,
                      max_t: int) -> np.ndarray:
    """P(predator present) as a function of steps since the last attack.

    P(1) = 1 − p_leave
    P(t) = [P(t−1)(1 − p_attack)(1 − p_leave) + (1 − P(t−1)) p_arrive]
           / [1 − P(t−1) p_attack]                          for t = 2..max_t

    The numerator is P(present now and no attack last step); the
    denominator is P(no attack last step). Entry 0 (an attack has just
    happened) is 1.

    Args:
        p_leave: Per-step probability that a present predator leaves.
        p_arrive: Per-step probability that an absent predator arrives.
        p_attack: Per-step probability that a present predator attacks.
        max_t: Largest tracked time since attack.

    Returns:
        Array of shape (max_t + 1,).
    """
    presence = np.empty(max_t + 1, dtype=np.float64)
    presence[0] = 1.0
    presence[1] = 1.0 - p_leave
    for t in range(2, max_t + 1):
        prev = presence[t - 1]
        presence[t] = (
            (prev * (1.0 - p_attack) * (1.0 - p_leave) + (1.0 - prev) * p_arrive)
            / (1.0 - prev * p_attack)
        )
    return presence


# ═══════════════════════════════════════════════════════════════════════
# MORTALITY
# ═══════════════════════════════════════════════════════════════════════

def kill_probability(alpha: float, max_h: int) -> np.ndarray:
    """P(killed | attacked) = max(0, 1 − (h / max_h)^alpha).

    Non-increasing in h and exactly 0 at h = max_h.
    """
    h_frac = np.arange(max_h + 1, dtype=np.float64) / max_h
    return np.maximum(0.0, 1.0 - np.power(h_frac, alpha))


def background_mortality(mu0: float, k_mort: float, max_d: int) -> np.ndarray:
    """Per-step background mortality μ(d) = min(1, mu0 + k_mort·d)."""
    d = np.arange(max_d + 1, dtype=np.float64)
    return np.minimum(1.0, mu0 + k_mort * d)
