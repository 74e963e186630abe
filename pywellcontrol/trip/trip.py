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
from typing import Optional, Tuple

from pywellcontrol.classes import eq_mode, eq_result, phase, trip_dir
from pywellcontrol.config import DEFAULT_SETTINGS
from pywellcontrol.errors import Diagnostic
from pywellcontrol.estimators import SwabSurgeEstimator, safe_estimate
from pywellcontrol.floatvalve import FloatValveEqualizer
from pywellcontrol.fluid import FluidIdentity
from pywellcontrol.hydrostatics import LayerRow, Totals, density_to_pressure, pressure_to_density, totals
from pywellcontrol.shared_fns import CancellationToken, is_cancelled, notify
from pywellcontrol.snapshot import ProjectSnapshot
from pywellcontrol.stack import Carve, OpenHolePocket, Stack, blend_carves
from pywellcontrol.validate import validate_non_negative, validate_positive

logger = logging.getLogger(__name__)

# =============================================================================
# Inputs and outputs
# =============================================================================

@dataclass(frozen=True)
class TripInput:
    """ Trip definition. Pulling out when end_md < start_md, running in when end_md > start_md.

        start_md: Starting bit depth (m)
        end_md: Final bit depth (m)
        target_esd_at_td: Equivalent density to hold at total depth (kg/m³)
        base_fluid: Active mud, used for default seeding and after the fixed backfill volume is spent
        backfill_fluid: Fluid pumped into the annulus from surface. Defaults to base_fluid
        fixed_backfill_volume: Volume of backfill_fluid to pump before switching (m³). 0 pumps backfill_fluid throughout
        switch_to_base_after_fixed: Switch to base_fluid once fixed_backfill_volume is spent
        record_step: Distance between recorded steps (m)
        crack_pressure_kpa: Float cracking pressure (kPa). Defaults to the settings value
        initial_sabp: Surface back pressure held during the initial equalization (kPa)
        hold_sabp_open: Keep the choke open (SABP = 0) throughout
        trip_speed_m_per_min: Pipe speed for swab/surge (m/min)
        eccentricity_factor: Pipe eccentricity, 1.0 for concentric
        observed_initial_pit_gain: Calibrate the initial equalization to this pit gain (m³)
        string_fill_fluid: Fluid filling the string from surface when running in. Defaults to base_fluid
        fill_string_while_running: Fill the string as pipe is run. False leaves new pipe full of air
        initial_string_layers, initial_annulus_layers, initial_pocket_layers: Seed state from a previous run.
            When given, these replace the project snapshot and base-fluid seeding for that conduit
    """
    start_md: float
    end_md: float
    target_esd_at_td: float
    base_fluid: FluidIdentity
    backfill_fluid: Optional[FluidIdentity] = None
    fixed_backfill_volume: float = 0.0
    switch_to_base_after_fixed: bool = True
    record_step: float = 10.0
    crack_pressure_kpa: Optional[float] = None
    initial_sabp: float = 0.0
    hold_sabp_open: bool = False
    trip_speed_m_per_min: float = 30.0
    eccentricity_factor: float = 1.0
    observed_initial_pit_gain: Optional[float] = None
    string_fill_fluid: Optional[FluidIdentity] = None
    fill_string_while_running: bool = True
    initial_string_layers: Optional[Tuple] = None
    initial_annulus_layers: Optional[Tuple] = None
    initial_pocket_layers: Optional[Tuple] = None

    @property
    def direction(self):
        return trip_dir.IN if self.end_md > self.start_md else trip_dir.OUT

    @property
    def backfill(self):
        return self.backfill_fluid if self.backfill_fluid is not None else self.base_fluid

    @property
    def string_fill(self):
        return self.string_fill_fluid if self.string_fill_fluid is not None else self.base_fluid

    def validate(self):
        validate_non_negative(start_md=self.start_md, end_md=self.end_md, target_esd_at_td=self.target_esd_at_td,
                              fixed_backfill_volume=self.fixed_backfill_volume, initial_sabp=self.initial_sabp,
                              trip_speed_m_per_min=self.trip_speed_m_per_min)
        validate_positive(record_step=self.record_step, eccentricity_factor=self.eccentricity_factor)
        if self.crack_pressure_kpa is not None:
            validate_non_negative(crack_pressure_kpa=self.crack_pressure_kpa)
        if self.observed_initial_pit_gain is not None:
            validate_non_negative(observed_initial_pit_gain=self.observed_initial_pit_gain)
        if self.base_fluid is None:
            raise ValueError("base_fluid is required")


@dataclass(frozen=True)
class TripStep:
    """ Well state at one recorded bit depth. Pressures kPa, densities kg/m³, volumes m³.
        dynamic_pressure is the swab (pulling out) or surge (running in) averaged over the internal
        steps since the previous record. Step volumes cover the same internal steps.
    """
    bit_md: float
    bit_tvd: float
    sabp: float
    sabp_raw: float
    sabp_dynamic: float
    esd_at_td: float
    esd_at_bit: float
    backfill_remaining: float
    dynamic_pressure: float
    float_state: str
    step_backfill: float
    cumulative_backfill: float
    expected_fill_if_closed: float
    expected_fill_if_open: float
    slug_contribution: float
    cumulative_slug_contribution: float
    pit_gain: float
    cumulative_pit_gain: float
    surface_tank_delta: float
    cumulative_surface_tank_delta: float
    string_layers: Tuple[LayerRow, ...]
    annulus_layers: Tuple[LayerRow, ...]
    pocket_layers: Tuple[LayerRow, ...]
    string_totals: Totals
    annulus_totals: Totals
    pocket_totals: Totals
    direction: trip_dir = trip_dir.OUT

    @property
    def swab(self):
        return self.dynamic_pressure if self.direction == trip_dir.OUT else 0.0

    @property
    def surge(self):
        return self.dynamic_pressure if self.direction == trip_dir.IN else 0.0


@dataclass(frozen=True)
class TripProgress:
    phase: phase
    current_md: float
    start_md: float
    end_md: float
    float_state: str
    iterations: int
    message: str

    @property
    def fraction(self):
        """ Distance travelled as a fraction of the trip, 0 to 1 """
        total = abs(self.end_md - self.start_md)
        if total <= 0:
            return 1.0
        return min(1.0, max(0.0, abs(self.current_md - self.start_md) / total))


@dataclass(frozen=True)
class TripResult:
    """ Recorded steps plus the final layers of each conduit for chaining into another run """
    steps: Tuple[TripStep, ...]
    diagnostics: Tuple[Diagnostic, ...]
    converged: bool
    cancelled: bool
    string_layers: Tuple[LayerRow, ...]
    annulus_layers: Tuple[LayerRow, ...]
    pocket_layers: Tuple[LayerRow, ...]
    direction: trip_dir = trip_dir.OUT

    @property
    def final(self):
        return self.steps[-1] if self.steps else None

    def __len__(self):
        return len(self.steps)

# =============================================================================
# Simulation
# =============================================================================

def _float_label(n_steps, n_open):
    if n_steps and n_open >= n_steps:
        return "OPEN 100%"
    if n_open <= 0:
        return "CLOSED 100%"
    pct = min(99, max(1, int(round(n_open / n_steps * 100))))
    return f"OPEN {pct}%"


class _StepTally:
    """ Volumes and dynamic pressure accumulated between recorded steps """
    def __init__(self):
        self.backfill = self.slug = self.pit_gain = 0.0
        self.expected_closed = self.expected_open = 0.0
        self.dynamic = 0.0
        self.n = self.n_open = 0


class _TripRun:
    def __init__(self, trip_input, geometry, tvd, project_snapshot, settings, swab_surge, on_progress, cancel_token):
        self.inp = trip_input
        self.geom = geometry
        self.tvd = tvd
        self.snapshot = project_snapshot if project_snapshot is not None else ProjectSnapshot()
        self.settings = settings
        self.swab_surge = swab_surge if swab_surge is not None else SwabSurgeEstimator()
        self.on_progress = on_progress
        self.cancel_token = cancel_token
        self.dir = trip_input.direction
        self.crack = trip_input.crack_pressure_kpa if trip_input.crack_pressure_kpa is not None else settings.crack_pressure_kpa

        self.string = Stack('STRING', geometry, tvd, settings)
        self.annulus = Stack('ANNULUS', geometry, tvd, settings)
        self.pocket = OpenHolePocket(geometry, tvd, settings)
        self.valve = FloatValveEqualizer(self.string, self.annulus, settings)

        self.bit = trip_input.start_md
        self.sabp = trip_input.initial_sabp
        self.backfill_remaining = trip_input.fixed_backfill_volume
        self.steps = []
        self.diagnostics = []
        self.cum_backfill = self.cum_slug = self.cum_pit = self.cum_tank = 0.0

    # ---- Helpers ---------------------------------------------------------

    def progress(self, ph, float_label, iterations, message):
        notify(self.on_progress, TripProgress(ph, self.bit, self.inp.start_md, self.inp.end_md, float_label, iterations, message))

    def _seed(self, stack, custom, layers):
        if custom:
            stack.assign(custom, self.bit)
            return
        stack.seed_uniform(self.inp.base_fluid, 0.0, self.bit)
        for l in layers:
            stack.paint_interval(l.top, min(l.bottom, self.bit), l.fluid)
        stack.ensure_invariants(self.bit)

    def _note_equalization(self, res):
        if res.reason == eq_result.CAPPED:
            self.diagnostics.append(Diagnostic(
                'EQ_CAPPED', f"Float equalization stopped after {res.iterations} parcels without converging", self.bit))

    def _snapshot_rows(self):
        p_rows, a_rows, s_rows = self.pocket.rows(self.bit), self.annulus.rows(self.bit), self.string.rows(self.bit)
        return p_rows, a_rows, s_rows, totals(p_rows), totals(a_rows), totals(s_rows)

    def _update_sabp(self, p_tot, a_tot):
        raw = max(0.0, self.target_p - p_tot.delta_p - a_tot.delta_p)
        self.sabp = 0.0 if self.inp.hold_sabp_open else raw
        return raw

    def _make_step(self, label, dynamic, tally, rows, raw):
        p_rows, a_rows, s_rows, p_tot, a_tot, s_tot = rows
        bit_tvd = self.tvd(self.bit)
        if self.dir == trip_dir.OUT:
            sabp_dyn = max(0.0, self.sabp + dynamic)
        else:
            sabp_dyn = max(0.0, self.sabp - dynamic)
        esd_td = pressure_to_density(p_tot.delta_p + a_tot.delta_p + self.sabp, self.td_tvd)
        esd_bit = max(0.0, pressure_to_density(a_tot.delta_p + self.sabp, bit_tvd))
        tank = tally.pit_gain - tally.backfill
        self.cum_backfill += tally.backfill
        self.cum_slug += tally.slug
        self.cum_pit += tally.pit_gain
        self.cum_tank += tank
        return TripStep(
            bit_md=self.bit, bit_tvd=bit_tvd, sabp=self.sabp, sabp_raw=raw, sabp_dynamic=sabp_dyn,
            esd_at_td=esd_td, esd_at_bit=esd_bit, backfill_remaining=max(0.0, self.backfill_remaining),
            dynamic_pressure=dynamic, float_state=label,
            step_backfill=tally.backfill, cumulative_backfill=self.cum_backfill,
            expected_fill_if_closed=tally.expected_closed, expected_fill_if_open=tally.expected_open,
            slug_contribution=tally.slug, cumulative_slug_contribution=self.cum_slug,
            pit_gain=tally.pit_gain, cumulative_pit_gain=self.cum_pit,
            surface_tank_delta=tank, cumulative_surface_tank_delta=self.cum_tank,
            string_layers=s_rows, annulus_layers=a_rows, pocket_layers=p_rows,
            string_totals=s_tot, annulus_totals=a_tot, pocket_totals=p_tot, direction=self.dir)

    def _reached_end(self):
        if self.dir == trip_dir.OUT:
            return self.bit <= self.inp.end_md + self.settings.epsilon
        return self.bit >= self.inp.end_md - self.settings.epsilon

    # ---- Backfill --------------------------------------------------------

    def _backfill(self, need):
        """ Pumps need (m³) into the annulus from surface. Returns the volume pumped """
        eps_v = self.settings.volume_epsilon
        if need <= eps_v:
            return 0.0
        inp, used = self.inp, 0.0
        if inp.fixed_backfill_volume > eps_v:
            kill = min(need, self.backfill_remaining) if inp.switch_to_base_after_fixed else need
            if kill > eps_v:
                self.annulus.add_from_surface(inp.backfill, kill, self.bit)
                self.backfill_remaining -= kill
                need -= kill
                used += kill
            if need > eps_v and inp.switch_to_base_after_fixed:
                self.annulus.add_from_surface(inp.base_fluid, need, self.bit)
                used += need
        else:
            self.annulus.add_from_surface(inp.backfill, need, self.bit)
            used = need
        self.annulus.ensure_invariants(self.bit)
        return used

    # ---- Bit movement ----------------------------------------------------

    def _step_out(self, old, new, closed, tally):
        dl = old - new
        base_rho = self.inp.base_fluid.density
        if closed:
            # Wet pipe: the string column rides up with the pipe and the hole left behind takes pipe OD volume
            a = self.annulus.take_bottom_by_length(dl)
            v_need = self.geom.volume_of_string_od(new, old)
            a = a.plus(v_need, a.density if a.volume > self.settings.volume_epsilon else base_rho)
            fluid = blend_carves([a], base_rho)
            pocket_len = a.length
            self.string.translate(-dl, new)
            self.annulus.ensure_invariants(new)
        else:
            # Dry pipe: string fluid stays in the hole, only steel is withdrawn
            s = self.string.take_bottom_by_length(dl)
            a = self.annulus.take_bottom_by_length(dl)
            v_need = self._steel_volume(new, old)
            a = a.plus(v_need, a.density if a.volume > self.settings.volume_epsilon else base_rho)
            fluid = blend_carves([a, s], base_rho)
            pocket_len = min(a.length, s.length)
            self.annulus.reanchor_to_bit(new)
            self.string.reanchor_to_bit(new)
        self.bit = new
        self.pocket.add_below_bit(new, pocket_len, fluid)
        tally.backfill += self._backfill(v_need)

    def _step_in(self, old, new, closed, tally):
        dl = new - old
        swallowed = self.pocket.take_top(new)
        self.bit = new
        self.annulus.extend_to_bit(swallowed, new)
        # The float blocks entry, so the pipe displaces its full OD whatever the drain state
        v_disp = self.geom.volume_of_string_od(old, new)
        disp_fluid = self._blend_segments(swallowed)
        tally.pit_gain += self.annulus.inject_at_bit_push_uphole(disp_fluid, v_disp, new)
        v_fill = self.geom.volume_in_string(0.0, dl)
        if self.inp.fill_string_while_running:
            self.string.add_from_surface(self.inp.string_fill, v_fill, new)
            tally.backfill += v_fill
        else:
            self.string.add_air_from_surface(v_fill, new)
        self.string.ensure_invariants(new)

    def _steel_volume(self, top, bottom):
        return max(0.0, self.geom.volume_of_string_od(top, bottom) - self.geom.volume_in_string(top, bottom))

    def _blend_segments(self, segs):
        carves = []
        for s in segs:
            vol = self.pocket.hole_volume(s.top, s.bottom)
            if vol > self.settings.volume_epsilon:
                carves.append(_seg_carve(s, vol))
        return blend_carves(carves, self.inp.base_fluid.density) if carves else self.inp.base_fluid

    # ---- Main loop -------------------------------------------------------

    def run(self):
        inp, st = self.inp, self.settings
        logger.info("Trip %s from %.1f m to %.1f m", self.dir.name, inp.start_md, inp.end_md)
        self.progress(phase.INITIALIZING, "CHECKING", 0, "Initializing simulation...")

        self._seed(self.string, inp.initial_string_layers, self.snapshot.string_layers)
        self._seed(self.annulus, inp.initial_annulus_layers, self.snapshot.annulus_layers)
        self.pocket.seed(inp.initial_pocket_layers or (), self.bit)
        td_md = max(inp.start_md, inp.end_md, self.pocket.bottom or 0.0)
        self.pocket.fill_to(self.bit, td_md, inp.base_fluid)
        self.td_tvd = self.tvd(td_md)
        self.target_p = density_to_pressure(inp.target_esd_at_td, self.td_tvd)

        cancelled = is_cancelled(self.cancel_token)
        init = None
        if not cancelled:
            init = self._initial_equalization()

        rows = self._snapshot_rows()
        raw = self._update_sabp(rows[3], rows[4])
        tally = _StepTally()
        if init is not None:
            tally.slug = init.drained_volume
            tally.pit_gain = init.pit_gain
        label = "OPEN (Initial Slug)" if init is not None and init.iterations > 0 else "CLOSED"
        self.steps.append(self._make_step(label, 0.0, tally, rows, raw))

        tally = _StepTally()
        last_record = last_progress = self.bit
        sign = -1.0 if self.dir == trip_dir.OUT else 1.0
        while not cancelled and not self._reached_end():
            if is_cancelled(self.cancel_token):
                cancelled = True
                break
            decision = self.valve.state(self.bit, self.sabp, self.crack)
            step = st.coarse_step if decision.closed and decision.margin > st.coarse_margin_kpa else st.fine_step
            old = self.bit
            new = max(inp.end_md, old - step) if sign < 0 else min(inp.end_md, old + step)
            dl = abs(new - old)
            top, bot = min(old, new), max(old, new)
            tally.expected_closed += self.geom.volume_of_string_od(top, bot)
            tally.expected_open += self._steel_volume(top, bot)

            if abs(old - last_progress) >= st.progress_interval_m:
                last_progress = old
                self.progress(phase.TRIPPING, decision.state.name, 0, f"Tripping at {old:.0f} m MD")

            if not decision.closed:
                res = self.valve.equalize(
                    old, self.sabp, eq_mode.CALC, max_iterations=st.max_step_equalization_iterations,
                    crack_pressure=self.crack,
                    on_iteration=lambda n, v: self.progress(phase.STEP_EQUALIZATION, "OPEN", n, f"Equalizing at {old:.0f} m"))
                self._note_equalization(res)
                tally.slug += res.drained_volume
                tally.pit_gain += res.pit_gain
                decision = self.valve.state(old, self.sabp, self.crack)

            closed = decision.closed
            if sign < 0:
                self._step_out(old, new, closed, tally)
            else:
                self._step_in(old, new, closed, tally)

            tally.n += 1
            tally.n_open += 0 if closed else 1
            est_label = "Swab" if sign < 0 else "Surge"
            tally.dynamic += safe_estimate(
                self.swab_surge.estimate, est_label, self.annulus.segments, self.bit, inp.trip_speed_m_per_min,
                self.geom, self.tvd, float_open=not closed, eccentricity=inp.eccentricity_factor,
                diagnostics=self.diagnostics, md=self.bit)

            reached = self._reached_end()
            if abs(last_record - self.bit) >= inp.record_step - st.record_tolerance or reached:
                last_record = self.bit
                rows = self._snapshot_rows()
                dynamic = tally.dynamic / tally.n if tally.n else 0.0
                raw = self._update_sabp(rows[3], rows[4])
                self.steps.append(self._make_step(_float_label(tally.n, tally.n_open), dynamic, tally, rows, raw))
                logger.debug("Recorded %.1f m: SABP %.1f kPa, %s", self.bit, self.sabp, self.steps[-1].float_state)
                tally = _StepTally()

        if cancelled:
            logger.info("Trip cancelled at %.1f m after %d recorded steps", self.bit, len(self.steps))
            self.progress(phase.CANCELLED, "N/A", 0, f"Simulation cancelled - {len(self.steps)} steps recorded")
        else:
            logger.info("Trip complete at %.1f m, %d steps recorded", self.bit, len(self.steps))
            self.progress(phase.COMPLETE, "N/A", 0, f"Simulation complete - {len(self.steps)} steps recorded")

        return TripResult(
            steps=tuple(self.steps), diagnostics=tuple(self.diagnostics),
            converged=not any(d.code == 'EQ_CAPPED' for d in self.diagnostics), cancelled=cancelled,
            string_layers=self.string.rows(self.bit), annulus_layers=self.annulus.rows(self.bit),
            pocket_layers=self.pocket.rows(self.bit), direction=self.dir)

    def _initial_equalization(self):
        inp, st = self.inp, self.settings
        observed = inp.observed_initial_pit_gain
        if observed is not None and observed > 0:
            self.progress(phase.INITIAL_EQUALIZATION, "CALIBRATING", 0,
                          f"Calibrating to observed pit gain: {observed * 1000:.1f} L")
            res = self.valve.equalize(
                self.bit, self.sabp, eq_mode.OBS, observed_volume=observed,
                max_iterations=st.max_initial_equalization_iterations, crack_pressure=self.crack,
                on_iteration=lambda n, v: self.progress(phase.INITIAL_EQUALIZATION, "CALIBRATING", n,
                                                        f"Calibrating - drained {v * 1000:.1f} L of {observed * 1000:.1f} L"))
        else:
            res = self.valve.equalize(
                self.bit, self.sabp, eq_mode.CALC, max_iterations=st.max_initial_equalization_iterations,
                crack_pressure=self.crack,
                on_iteration=lambda n, v: self.progress(phase.INITIAL_EQUALIZATION, "OPEN", n,
                                                        f"Initial slug pulse - draining {v * 1000:.1f} L"))
        self._note_equalization(res)
        return res


def _seg_carve(seg, volume):
    return Carve(seg.length, volume, seg.density * volume, seg.color, seg.fluid.pv_cp, seg.fluid.yp_pa)


def run_trip(trip_input, geometry, tvd, project_snapshot=None, settings=None, swab_surge=None,
             on_progress=None, cancel_token: Optional[CancellationToken] = None):
    """ Simulates moving the bit from trip_input.start_md to trip_input.end_md.

        trip_input: TripInput
        geometry: Geometry provider (see WellGeometry)
        tvd: Callable MD -> TVD (m)
        project_snapshot: ProjectSnapshot painted over the base fluid. Ignored for conduits given seed layers
        settings: SimulationSettings. Defaults to DEFAULT_SETTINGS
        swab_surge: Estimator with an estimate() method. Defaults to SwabSurgeEstimator()
        on_progress: Callable receiving TripProgress updates
        cancel_token: CancellationToken checked once per internal step

        Returns a TripResult. Equalization that hits its iteration cap is reported through
        diagnostics and converged=False, not raised.
    """
    trip_input.validate()
    settings = settings if settings is not None else DEFAULT_SETTINGS
    return _TripRun(trip_input, geometry, tvd, project_snapshot, settings, swab_surge, on_progress, cancel_token).run()
