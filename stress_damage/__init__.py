"""Stress-damage: optimal stress-hormone regulation under predation risk.

A state-dependent life-history model coupling:
  - Fluctuating predation risk (predator arrival, departure and attack)
  - Somatic damage accumulated by deviating from the damage-minimising
    hormone level, with constant repair
  - Damage-dependent background mortality and fecundity
  - A seasonal breeding cycle (one reproductive bout per season boundary)

The optimal strategy is found by backward induction over the season
(value iteration with a golden-section search per state), validated by a
forward population projection and exercised by a trajectory simulator.
"""

__version__ = "0.1.0"
