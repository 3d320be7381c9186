"""
Synthetic sensor streams.

    Scenario: Generated channels plus ground truth
    generate_stationary_scenario: Platform at rest
    generate_constant_turn_scenario: Level circular drive
"""

from eskf_localization.sim.scenario import (
    CHANNELS,
    Scenario,
    compute_specific_force_body,
    generate_constant_turn_scenario,
    generate_stationary_scenario,
    truth_position_at,
)

__all__ = [
    "CHANNELS",
    "Scenario",
    "compute_specific_force_body",
    "generate_constant_turn_scenario",
    "generate_stationary_scenario",
    "truth_position_at",
]
