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
from dataclasses import dataclass, field
from typing import Optional, Tuple

from pywellcontrol.classes import phase, stack_end
from pywellcontrol.config import DEFAULT_SETTINGS
from pywellcontrol.constants import constants as c
from pywellcontrol.errors import Diagnostic
from pywellcontrol.estimators import AplEstimator, safe_estimate
from pywellcontrol.fluid import FluidIdentity, FluidSegment
from pywellcontrol.hydrostatics import LayerRow, equivalent_density, layer_rows
from pywellcontrol.shared_fns import bisect_max_feasible, is_cancelled, notify
from pywellcontrol.stack import ParcelStack, VolumeParcel
from pywellcontrol.validate import validate_non_negative, validate_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PumpOperation:
    """ volume (m³) of fluid to pump down the string """
    fluid: FluidIdentity
    volume: float

    @property
    def name(self):
        return self.fluid.name or f"{self.fluid.density:.0f} kg/m³"


@dataclass(frozen=True)
class CirculationInput:
    """ Circulation at a fixed bit depth.

        bit_md: Bit depth (m)
        control_md: Depth at which ESD is held (m), usually the casing shoe
        target_esd: Equivalent density to hold at control_md (kg/m³)
        pump_queue: Sequence of PumpOperation, pumped in order
        pocket_layers: Annulus side layers, above and below the bit. Layers below the bit are left in place
        string_layers: String layers above the bit
        active_fluid: Fluid filling any capacity the layers leave unaccounted
        pump_output_m3_per_stroke: Pump displacement (m³/stroke)
        max_pump_rate: Preferred pump rate (m³/min)
        min_pump_rate: Lowest rate the pump rate search may reduce to (m³/min)
    """
    bit_md: float
    control_md: float
    target_esd: float
    pump_queue: Tuple[PumpOperation, ...] = ()
    pocket_layers: Tuple = ()
    string_layers: Tuple = ()
    active_fluid: FluidIdentity = field(default_factory=lambda: FluidIdentity(density=1200.0, name='Active'))
    pump_output_m3_per_stroke: float = 0.01
    max_pump_rate: float = 1.0
    min_pump_rate: float = 0.2

    def validate(self):
        validate_positive(bit_md=self.bit_md, pump_output_m3_per_stroke=self.pump_output_m3_per_stroke)
        validate_non_negative(control_md=self.control_md, target_esd=self.target_esd,
                              max_pump_rate=self.max_pump_rate, min_pump_rate=self.min_pump_rate)
        if self.min_pump_rate > self.max_pump_rate:
            raise ValueError(f"min_pump_rate ({self.min_pump_rate}) must not exceed max_pump_rate ({self.max_pump_rate})")
        for op in self.pump_queue:
            validate_non_negative(pump_volume=op.volume)

    @property
    def total_volume(self):
        return sum(op.volume for op in self.pump_queue)


@dataclass(frozen=True)
class CirculationStep:
    """ Well state after a pumped volume increment. Pressures kPa, densities kg/m³ """
    index: int
    volume_pumped_m3: float
    volume_pumped_bbl: float
    strokes: float
    esd_at_control: float
    required_sabp: float
    static_sabp: float
    delta_sabp: float
    cumulative_delta_sabp: float
    pump_rate: float
    apl: float
    description: str
    pocket_layers: Tuple[LayerRow, ...]
    string_layers: Tuple[LayerRow, ...]
    returned_volume: float = 0.0


@dataclass(frozen=True)
class CirculationProgress:
    phase: phase
    volume_pumped: float
    total_volume: float
    message: str

    @property
    def fraction(self):
        if self.total_volume <= 0:
            return 1.0
        return min(1.0, max(0.0, self.volume_pumped / self.total_volume))


@dataclass(frozen=True)
class CirculationResult:
    """ Pump schedule plus the final layers for chaining into a trip or another circulation.
        pocket_layers holds the annulus above the bit followed by the open hole below it
    """
    steps: Tuple[CirculationStep, ...]
    pocket_layers: Tuple[LayerRow, ...]
    string_layers: Tuple[LayerRow, ...]
    esd_at_control: float
    required_sabp: float
    surface_returns: Tuple[VolumeParcel, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    cancelled: bool = False

    @property
    def returned_volume(self):
        return sum(p.volume for p in self.surface_returns)

    def __len__(self):
        return len(self.steps)


def _open_hole_rows(layers, bit_md, control_md, fluid, tvd, geometry, eps):
    """ Layers below the bit, with fluid filling any open hole left between them and control_md """
    segs = [FluidSegment(max(l.top, bit_md), l.bottom, l.fluid) for l in sorted(layers, key=lambda x: x.top)
            if l.bottom > bit_md + eps]
    deepest = segs[-1].bottom if segs else bit_md
    if control_md > deepest + eps:
        segs.append(FluidSegment(deepest, control_md, fluid))
    return layer_rows(segs, 'Pocket', bit_md, tvd,
                      lambda a, b: geometry.volume_in_annulus(a, b) + geometry.volume_of_string_od(a, b), below_bit=True)


def run_circulation(circ_input, geometry, tvd, settings=None, apl=None, on_progress=None, cancel_token=None):
    """ Pumps circ_input.pump_queue down the string and up the annulus with the bit held fixed.

        circ_input: CirculationInput
        geometry: Geometry provider (see WellGeometry)
        tvd: Callable MD -> TVD (m)
        settings: SimulationSettings. Defaults to DEFAULT_SETTINGS
        apl: Estimator with an estimate(segments, bit_md, pump_rate, geometry) method. Defaults to AplEstimator()
        on_progress: Callable receiving CirculationProgress updates
        cancel_token: CancellationToken checked once per pumped increment

        The static back pressure needed at control_md is max(0, (target - ESD) x 0.00981 x TVD).
        Friction at max_pump_rate is taken off that. When friction alone exceeds it, the pump rate is
        reduced by bisection down to min_pump_rate.
    """
    circ_input.validate()
    st = settings if settings is not None else DEFAULT_SETTINGS
    apl = apl if apl is not None else AplEstimator()
    inp = circ_input
    bit = inp.bit_md
    diagnostics = []

    control_tvd = tvd(inp.control_md)
    if not inp.pump_queue or control_tvd <= 0:
        logger.info("Nothing to circulate (queue of %d operations, control TVD %.1f m)", len(inp.pump_queue), control_tvd)
        return CirculationResult((), tuple(inp.pocket_layers), tuple(inp.string_layers), 0.0, 0.0)

    str_cap = geometry.volume_in_string(0.0, bit)
    ann_cap = geometry.volume_in_annulus(0.0, bit)
    string = ParcelStack.from_string_layers(inp.string_layers, bit, geometry, st)
    string.top_up(inp.active_fluid, str_cap, stack_end.BOTTOM)
    annulus = ParcelStack.from_annulus_layers([l for l in inp.pocket_layers if l.top < bit], bit, geometry, st)
    annulus.top_up(inp.active_fluid, ann_cap, stack_end.TOP)
    open_hole = _open_hole_rows(inp.pocket_layers, bit, inp.control_md, inp.active_fluid, tvd, geometry, st.epsilon)

    def pocket_rows():
        return tuple(sorted(annulus.to_annulus_layers(bit, geometry, tvd) + open_hole, key=lambda r: r.top_md))

    def string_rows():
        return string.to_string_layers(bit, geometry, tvd)

    def esd_now():
        return equivalent_density(pocket_rows(), inp.control_md, tvd)

    def apl_at(rate):
        return safe_estimate(apl.estimate, 'APL', annulus.to_annulus_segments(bit, geometry), bit, rate, geometry,
                             diagnostics=diagnostics, md=bit)

    total = inp.total_volume
    logger.info("Circulating %.2f m3 in %d operations at %.1f m", total, len(inp.pump_queue), bit)
    notify(on_progress, CirculationProgress(phase.INITIALIZING, 0.0, total, "Initializing circulation..."))

    esd0 = esd_now()
    sabp0 = max(0.0, (inp.target_esd - esd0) * c.GRAD * control_tvd)
    steps = [CirculationStep(0, 0.0, 0.0, 0.0, esd0, sabp0, sabp0, 0.0, 0.0, 0.0, 0.0,
                             f"Initial state at {int(bit)}m", pocket_rows(), string_rows())]
    step_vol = max(st.min_circulation_step, total / st.max_circulation_points)
    returns = []
    pumped, prev_sabp, cancelled, floor_noted = 0.0, sabp0, False, False

    for op in inp.pump_queue:
        done = 0.0
        while done < op.volume - st.volume_epsilon:
            if is_cancelled(cancel_token):
                cancelled = True
                break
            vol = min(step_vol, op.volume - done)
            done += vol
            pumped += vol
            notify(on_progress, CirculationProgress(phase.CIRCULATING, pumped, total, f"Pumping {op.name}"))

            out_desc, step_return = "", 0.0
            for p in string.push_to_top_and_overflow(op.fluid, vol, str_cap):
                for r in annulus.push_to_bottom_and_overflow_top(p.fluid, p.volume, ann_cap):
                    returns.append(r)
                    step_return += r.volume
                    if not out_desc:
                        out_desc = f"Out: {int(r.density)} kg/m³"
            string.coalesce()
            annulus.coalesce()

            esd = esd_now()
            static = max(0.0, (inp.target_esd - esd) * c.GRAD * control_tvd)
            rate, loss, sabp = inp.max_pump_rate, 0.0, static
            if inp.max_pump_rate > st.min_flow_rate:
                loss = apl_at(inp.max_pump_rate)
                if static - loss >= 0:
                    sabp = static - loss
                else:
                    rate = bisect_max_feasible(apl_at, inp.min_pump_rate, inp.max_pump_rate, static,
                                               st.pump_rate_bisection_iterations)
                    loss = apl_at(rate)
                    sabp = max(0.0, static - loss)
                    if rate <= inp.min_pump_rate + 0.001 and loss > static:
                        rate, sabp = inp.min_pump_rate, 0.0
                        if not floor_noted:
                            floor_noted = True
                            msg = (f"Friction at the minimum pump rate ({inp.min_pump_rate:.2f} m3/min) exceeds the "
                                   f"static back pressure; ECD will exceed target")
                            logger.warning(msg)
                            diagnostics.append(Diagnostic('PUMP_RATE_FLOOR', msg, bit))

            if abs(done - op.volume) < 0.01:
                desc = f"End: {op.name} ({op.volume:.1f} m³)"
            elif out_desc:
                desc = out_desc
            else:
                desc = f"Pumping {op.name}..."
            steps.append(CirculationStep(
                index=len(steps), volume_pumped_m3=pumped, volume_pumped_bbl=pumped * c.M3_TO_BBL,
                strokes=pumped / inp.pump_output_m3_per_stroke, esd_at_control=esd, required_sabp=sabp,
                static_sabp=static, delta_sabp=sabp - prev_sabp, cumulative_delta_sabp=sabp - sabp0,
                pump_rate=rate, apl=loss, description=desc, pocket_layers=pocket_rows(),
                string_layers=string_rows(), returned_volume=step_return))
            logger.debug("Pumped %.2f m3: ESD %.1f kg/m3, SABP %.1f kPa at %.2f m3/min", pumped, esd, sabp, rate)
            prev_sabp = sabp
        if cancelled:
            break

    final = steps[-1]
    if cancelled:
        logger.info("Circulation cancelled after %.2f m3", pumped)
        notify(on_progress, CirculationProgress(phase.CANCELLED, pumped, total, f"Circulation cancelled - {len(steps)} steps recorded"))
    else:
        logger.info("Circulation complete: ESD %.1f kg/m3, SABP %.1f kPa", final.esd_at_control, final.required_sabp)
        notify(on_progress, CirculationProgress(phase.COMPLETE, pumped, total, f"Circulation complete - {len(steps)} steps recorded"))
    return CirculationResult(tuple(steps), pocket_rows(), string_rows(), final.esd_at_control, final.required_sabp,
                             tuple(returns), tuple(diagnostics), cancelled)
