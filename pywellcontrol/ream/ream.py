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

# Reaming is tripping with the pumps on.
#   Ream out:  BHP = hydrostatic + SABP + APL - swab
#   Ream in:   BHP = hydrostatic + SABP + APL + surge

import logging
from dataclasses import dataclass
from typing import Tuple

from pywellcontrol.constants import constants as c
from pywellcontrol.errors import Diagnostic
from pywellcontrol.estimators import AplEstimator, safe_estimate
from pywellcontrol.hydrostatics import equivalent_density
from pywellcontrol.trip import TripResult, TripStep, run_trip
from pywellcontrol.validate import validate_non_negative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReamOutStep:
    trip_step: TripStep
    swab: float
    apl: float
    pump_rate: float
    sabp_dynamic: float
    ecd: float

    @property
    def bit_md(self):
        return self.trip_step.bit_md

    @property
    def sabp(self):
        return self.trip_step.sabp


@dataclass(frozen=True)
class ReamInStep:
    trip_step: TripStep
    esd_at_control: float
    required_choke: float
    surge: float
    apl: float
    pump_rate: float
    dynamic_choke: float
    ecd: float

    @property
    def bit_md(self):
        return self.trip_step.bit_md

    @property
    def below_target(self):
        """ True when the well needs choke even with the pumps on """
        return self.dynamic_choke > 0


@dataclass(frozen=True)
class ReamResult:
    steps: Tuple
    trip: TripResult
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def cancelled(self):
        return self.trip.cancelled

    def __len__(self):
        return len(self.steps)


def _step_apl(apl, step, pump_rate, geometry, diagnostics):
    return safe_estimate(apl.estimate, 'APL', step.annulus_layers, step.bit_md, pump_rate, geometry,
                         diagnostics=diagnostics, md=step.bit_md)


def run_ream_out(trip_input, geometry, tvd, pump_rate, control_md, project_snapshot=None, settings=None,
                 swab_surge=None, apl=None, on_progress=None, cancel_token=None):
    """ Trip out with circulation. Each recorded trip step gains the friction of pumping at pump_rate (m³/min).

        SABP_dynamic = max(0, SABP + swab - APL)
        ECD = ESD_TD + (SABP_dynamic + APL) / (0.00981 x TVD_control)

        Remaining arguments as run_trip. apl defaults to AplEstimator().
        Returns a ReamResult of ReamOutStep
    """
    validate_non_negative(pump_rate=pump_rate, control_md=control_md)
    if trip_input.end_md > trip_input.start_md:
        raise ValueError("Ream out needs end_md shallower than start_md")
    apl = apl if apl is not None else AplEstimator()
    trip = run_trip(trip_input, geometry, tvd, project_snapshot, settings, swab_surge, on_progress, cancel_token)
    control_tvd = tvd(control_md)
    diagnostics = list(trip.diagnostics)
    steps = []
    for s in trip.steps:
        loss = _step_apl(apl, s, pump_rate, geometry, diagnostics)
        sabp_dyn = max(0.0, s.sabp + s.swab - loss)
        ecd = s.esd_at_td + (sabp_dyn + loss) / (c.GRAD * control_tvd) if control_tvd > 0 else s.esd_at_td
        steps.append(ReamOutStep(s, s.swab, loss, pump_rate, sabp_dyn, ecd))
    logger.info("Ream out: %d steps at %.2f m3/min", len(steps), pump_rate)
    return ReamResult(tuple(steps), trip, tuple(diagnostics))


def run_ream_in(trip_input, geometry, tvd, pump_rate, control_md, project_snapshot=None, settings=None,
                swab_surge=None, apl=None, on_progress=None, cancel_token=None):
    """ Trip in with circulation.

        dynamic_choke = max(0, SABP - APL - surge)
        ECD = ESD_control + (dynamic_choke + APL + surge) / (0.00981 x TVD_control)
    """
    validate_non_negative(pump_rate=pump_rate, control_md=control_md)
    if trip_input.end_md < trip_input.start_md:
        raise ValueError("Ream in needs end_md deeper than start_md")
    apl = apl if apl is not None else AplEstimator()
    trip = run_trip(trip_input, geometry, tvd, project_snapshot, settings, swab_surge, on_progress, cancel_token)
    control_tvd = tvd(control_md)
    diagnostics = list(trip.diagnostics)
    steps = []
    for s in trip.steps:
        loss = _step_apl(apl, s, pump_rate, geometry, diagnostics)
        esd = equivalent_density(s.annulus_layers + s.pocket_layers, control_md, tvd)
        choke = max(0.0, s.sabp - loss - s.surge)
        ecd = esd + (choke + loss + s.surge) / (c.GRAD * control_tvd) if control_tvd > 0 else esd
        steps.append(ReamInStep(s, esd, s.sabp, s.surge, loss, pump_rate, choke, ecd))
    logger.info("Ream in: %d steps at %.2f m3/min", len(steps), pump_rate)
    return ReamResult(tuple(steps), trip, tuple(diagnostics))
