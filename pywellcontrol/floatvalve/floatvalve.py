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

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pywellcontrol.classes import eq_mode, eq_result, float_state, side
from pywellcontrol.config import DEFAULT_SETTINGS
from pywellcontrol.errors import ContractViolation
from pywellcontrol.validate import validate_methods

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloatDecision:
    """ Float state at the bit and the pressures it was decided from (kPa).
        margin is positive while the float holds, by the pressure string fluid would need to crack it
    """
    state: float_state
    string_pressure: float
    annulus_pressure: float
    margin: float

    @property
    def closed(self):
        return self.state == float_state.CLOSED


@dataclass(frozen=True)
class EqualizationResult:
    """ Outcome of a U-tube equalization.

        drained_volume: String fluid moved into the annulus (m³)
        pit_gain: Annulus fluid returned at surface (m³)
        iterations: Parcels drained
        reason: eq_result termination reason
        decision: Float state after the last parcel
    """
    drained_volume: float
    pit_gain: float
    iterations: int
    reason: eq_result
    decision: FloatDecision

    @property
    def capped(self):
        return self.reason == eq_result.CAPPED


class FloatValveEqualizer:
    """ U-tubes string fluid into the annulus while the float is open.

        Each iteration drains one parcel from the bottom of the string, fills the same volume of
        air in at surface and injects the drained fluid at the bottom of the annulus, which
        returns annulus fluid at surface.

        string_stack: STRING Stack
        annulus_stack: ANNULUS Stack
        settings: SimulationSettings. Defaults to DEFAULT_SETTINGS
    """
    def __init__(self, string_stack, annulus_stack, settings=None):
        if string_stack.side != side.STRING or annulus_stack.side != side.ANNULUS:
            raise ContractViolation("FloatValveEqualizer needs a STRING stack and an ANNULUS stack")
        self.string = string_stack
        self.annulus = annulus_stack
        self.settings = settings if settings is not None else DEFAULT_SETTINGS

    def state(self, bit_md, sabp, tolerance=None):
        """ CLOSED when string pressure <= annulus pressure + tolerance (crack pressure by default). Depends only on the two stacks """
        tol = self.settings.crack_pressure_kpa if tolerance is None else tolerance
        p_str = self.string.pressure_at_bit(bit_md)
        p_ann = self.annulus.pressure_at_bit(bit_md, sabp)
        margin = p_ann + tol - p_str
        return FloatDecision(float_state.CLOSED if margin >= 0 else float_state.OPEN, p_str, p_ann, margin)

    def drain_parcel(self, bit_md, volume):
        """ Moves up to volume (m³) from the string bottom into the annulus.
            Returns (drained volume, surface return)
        """
        drained, fluid = self.string.drain_from_bottom(volume, bit_md)
        if drained <= self.settings.volume_epsilon:
            return 0.0, 0.0
        self.string.add_air_from_surface(drained, bit_md)
        self.string.ensure_invariants(bit_md)
        returned = self.annulus.inject_at_bit_push_uphole(fluid, drained, bit_md)
        return drained, returned

    def equalize(self, bit_md, sabp, mode=eq_mode.CALC, observed_volume=None, max_iterations=None,
                 on_iteration: Optional[Callable] = None, crack_pressure=None):
        """ Drains parcels until the float closes (CALC) or observed_volume has drained (OBS).

            bit_md: Bit depth (m)
            sabp: Surface back pressure on the annulus (kPa)
            mode: eq_mode or 'CALC' / 'OBS'
            observed_volume: Volume to drain in OBS mode (m³)
            max_iterations: Parcel cap. Defaults to settings.max_step_equalization_iterations
            on_iteration: Called as on_iteration(iterations, drained_volume) every settings.progress_iterations parcels
            crack_pressure: Float cracking pressure (kPa). Defaults to settings.crack_pressure_kpa
        """
        mode = validate_methods(["eqmode"], [mode])
        cap = self.settings.max_step_equalization_iterations if max_iterations is None else max_iterations
        crack = self.settings.crack_pressure_kpa if crack_pressure is None else crack_pressure
        pulse = self.settings.pulse_volume
        if mode == eq_mode.OBS and (observed_volume is None or observed_volume < 0):
            raise ValueError("Observed equalization needs a non-negative observed_volume")

        drained_tot, returned_tot, itr = 0.0, 0.0, 0
        reason = None
        remaining = observed_volume if mode == eq_mode.OBS else None
        while reason is None:
            if mode == eq_mode.CALC:
                if self.state(bit_md, sabp, crack).closed:
                    reason = eq_result.CONVERGED
                    break
                request = pulse
            else:
                if remaining <= self.settings.volume_epsilon:
                    reason = eq_result.VOLUME_DRAINED
                    break
                request = min(pulse, remaining)
            if itr >= cap:
                reason = eq_result.CAPPED
                break
            drained, returned = self.drain_parcel(bit_md, request)
            if drained <= self.settings.volume_epsilon:
                reason = eq_result.EXHAUSTED
                break
            itr += 1
            drained_tot += drained
            returned_tot += returned
            if remaining is not None:
                remaining -= drained
            if on_iteration is not None and itr % self.settings.progress_iterations == 0:
                on_iteration(itr, drained_tot)

        if reason == eq_result.CAPPED:
            logger.warning("Float equalization at %.1f m stopped after %d parcels (%.3f m3 drained) without converging",
                           bit_md, itr, drained_tot)
        elif itr:
            logger.debug("Float equalization at %.1f m: %s after %d parcels, %.3f m3 drained",
                         bit_md, reason.name, itr, drained_tot)
        return EqualizationResult(drained_tot, returned_tot, itr, reason, self.state(bit_md, sabp, crack))
