#!/usr/bin/python3
# -*- coding: utf-8 -*-

"""
    pyWellControl - A collection of Wellbore Fluid Control Utilities
              Copyright (C) 2022, Mark Burgoyne

    This program is free software: you can redistribute it and/or modify
    it under the terms of the GNU General Public License as published by
    the Free Software Foundation, either version 3 of the License, or
    (at your option) any later version.

    This program is distributed in the hope that it will be useful,
    but WITHOUT ANY WARRANTY; without even the implied warranty of
    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
    GNU General Public License for more details.

    The GNU General Public License can be found in the LICENSE directory,
    and at  <https://www.gnu.org/licenses/>.

          Contact author at mark.w.burgoyne@gmail.com
"""

from dataclasses import dataclass, fields, replace as dc_replace

from pywellcontrol.constants import constants as c


@dataclass(frozen=True)
class SimulationSettings:
    """ Tuning and tolerance parameters shared by the trip, circulation and equalization loops.

        epsilon: Depth comparison tolerance (m)
        volume_epsilon: Volumes and lengths below this are treated as zero (m³ or m)
        density_merge_tolerance: Neighbouring depth segments closer than this in density are merged (kg/m³)
        parcel_density_tolerance: Neighbouring parcels closer than this in density are coalesced (kg/m³)
        parcel_color_tolerance: Maximum per-component colour difference for parcel coalescing
        crack_pressure_kpa: Float cracking pressure (kPa). The float is CLOSED while string pressure at the bit
            is at most annulus pressure plus this value
        pulse_volume: Volume drained per equalization iteration (m³)
        max_initial_equalization_iterations: Iteration cap for equalization before the first step
        max_step_equalization_iterations: Iteration cap for equalization at each depth step
        fine_step: Bit movement per internal step near a float transition (m)
        coarse_step: Bit movement per internal step when the float is solidly closed (m)
        coarse_margin_kpa: Closed-float pressure margin above which the coarse step is used (kPa)
        record_tolerance: Distance short of record_step that still triggers a recorded step (m)
        progress_interval_m: Bit movement between progress notifications (m)
        progress_iterations: Equalization iterations between progress notifications
        max_circulation_points: Upper bound on recorded circulation steps
        min_circulation_step: Smallest pumped-volume increment during circulation (m³)
        pump_rate_bisection_iterations: Bisection iterations when reducing pump rate for APL
        length_bisection_iterations: Bisection iterations when converting an annulus volume to a length
        min_flow_rate: Flow rate below which friction is zero (m³/min)
        air_density: Density of the air column left in a draining string (kg/m³)
    """
    epsilon: float = c.EPS
    volume_epsilon: float = c.EPS_V
    density_merge_tolerance: float = c.RHO_MERGE_TOL
    parcel_density_tolerance: float = c.PARCEL_RHO_TOL
    parcel_color_tolerance: float = c.PARCEL_COLOR_TOL
    crack_pressure_kpa: float = c.CRACK_KPA
    pulse_volume: float = c.PULSE_VOL
    max_initial_equalization_iterations: int = c.MAX_INIT_EQ_ITR
    max_step_equalization_iterations: int = c.MAX_STEP_EQ_ITR
    fine_step: float = c.FINE_STEP
    coarse_step: float = c.COARSE_STEP
    coarse_margin_kpa: float = c.COARSE_MARGIN_KPA
    record_tolerance: float = c.RECORD_TOL
    progress_interval_m: float = c.PROGRESS_INTERVAL
    progress_iterations: int = c.PROGRESS_ITR
    max_circulation_points: int = c.MAX_CIRC_POINTS
    min_circulation_step: float = c.MIN_CIRC_STEP
    pump_rate_bisection_iterations: int = c.PUMP_BISECT_ITR
    length_bisection_iterations: int = c.LENGTH_BISECT_ITR
    min_flow_rate: float = c.MIN_FLOW_RATE
    air_density: float = c.RHO_AIR

    def __post_init__(self):
        positives = ['epsilon', 'volume_epsilon', 'density_merge_tolerance', 'parcel_density_tolerance',
                     'pulse_volume', 'fine_step', 'coarse_step', 'progress_interval_m', 'min_circulation_step']
        for name in positives:
            if getattr(self, name) <= 0:
                raise ValueError(name + " must be positive, got " + str(getattr(self, name)))
        for f in fields(self):
            if f.type in (int, 'int') and getattr(self, f.name) < 1:
                raise ValueError(f.name + " must be at least 1, got " + str(getattr(self, f.name)))
        for name in ['crack_pressure_kpa', 'coarse_margin_kpa', 'record_tolerance',
                     'parcel_color_tolerance', 'min_flow_rate', 'air_density']:
            if getattr(self, name) < 0:
                raise ValueError(name + " must not be negative, got " + str(getattr(self, name)))
        if self.fine_step > self.coarse_step:
            raise ValueError("fine_step (" + str(self.fine_step) + ") must not exceed coarse_step (" + str(self.coarse_step) + ")")

    def replace(self, **changes):
        """ Returns a copy with the given fields changed """
        return dc_replace(self, **changes)


DEFAULT_SETTINGS = SimulationSettings()
