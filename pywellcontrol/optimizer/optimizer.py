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

# Kill mud for a slugged trip out of a horizontal well.
# After the slugs have U-tubed and the pipe is out, the annulus holds from surface:
#   kill mud      pipe steel displacement + slug drop
#   surface slug
#   active mud
#   second slug   string capacity from the surface slug bottom to the heel, bottom at the heel
#   original mud  down to the control depth
# The kill mud density is the one that gives the target ESD at the control depth.

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from pywellcontrol.constants import constants as c
from pywellcontrol.errors import Diagnostic
from pywellcontrol.fluid import FluidIdentity, FluidSegment
from pywellcontrol.hydrostatics import equivalent_density
from pywellcontrol.validate import validate_non_negative, validate_positive

logger = logging.getLogger(__name__)


def _sorted_survey(md, inc, tvd):
    md, inc, tvd = (np.asarray(x, dtype=float) for x in (md, inc, tvd))
    if not (md.shape == inc.shape == tvd.shape):
        raise ValueError("md, inc and tvd must be arrays of equal length")
    order = np.argsort(md, kind='stable')
    return md[order], inc[order], tvd[order]


def find_inclination_depth(md, inc, tvd, target_inc):
    """ (md, tvd) of the first survey station at or above target_inc (degrees), or None """
    md, inc, tvd = _sorted_survey(md, inc, tvd)
    hits = np.nonzero(inc >= target_inc)[0]
    if hits.size == 0:
        return None
    return float(md[hits[0]]), float(tvd[hits[0]])


def find_heel_depth(md, inc, tvd):
    """ (md, tvd) of the heel: the first station at 90° or more, else the most inclined
        station when it is past 45°. None for a well that never builds that far
    """
    heel = find_inclination_depth(md, inc, tvd, c.HEEL_INC)
    if heel is not None:
        return heel
    md, inc, tvd = _sorted_survey(md, inc, tvd)
    if inc.size == 0 or inc.max() <= c.HEEL_FALLBACK_INC:
        return None
    i = int(np.argmax(inc))
    return float(md[i]), float(tvd[i])


@dataclass(frozen=True)
class KillMudInput:
    """ Slugged trip out to be balanced with kill mud.

        target_esd: Equivalent density to hold at control_md (kg/m³)
        surface_slug_volume: Slug pumped at surface (m³)
        surface_slug_density: (kg/m³)
        base_mud_density: Active mud density (kg/m³)
        start_bit_md: Bit depth at the start of the trip (m)
        control_md: Depth at which ESD is held (m), usually the casing shoe
        crack_pressure_kpa: Float cracking pressure (kPa)
        second_slug_density: (kg/m³). Defaults to 2 x target - base + crack pressure equivalent at the heel
        heel_md: Heel depth (m). Defaults to the survey heel, or 70% of start_bit_md
        observed_slug_drop: Slug drop measured or simulated (m³). Replaces the estimate when given
    """
    target_esd: float
    surface_slug_volume: float
    surface_slug_density: float
    base_mud_density: float
    start_bit_md: float
    control_md: float
    crack_pressure_kpa: float = c.CRACK_KPA
    second_slug_density: Optional[float] = None
    heel_md: Optional[float] = None
    observed_slug_drop: Optional[float] = None

    def validate(self):
        validate_positive(target_esd=self.target_esd, surface_slug_density=self.surface_slug_density,
                          base_mud_density=self.base_mud_density, start_bit_md=self.start_bit_md,
                          control_md=self.control_md)
        validate_non_negative(surface_slug_volume=self.surface_slug_volume, crack_pressure_kpa=self.crack_pressure_kpa)
        if self.second_slug_density is not None:
            validate_positive(second_slug_density=self.second_slug_density)
        if self.heel_md is not None:
            validate_positive(heel_md=self.heel_md)
        if self.observed_slug_drop is not None:
            validate_non_negative(observed_slug_drop=self.observed_slug_drop)


@dataclass(frozen=True)
class KillMudResult:
    """ Kill mud density and the annulus column it was solved against.
        Volumes m³, densities kg/m³, depths m. Heights are TVD spans of each annulus layer.
        valid is False when the density had to be clamped or defaulted, so the target is not met.
    """
    kill_mud_density: float
    kill_mud_volume: float
    steel_displacement: float
    slug_drop_volume: float
    slug_drop_calculated: float
    surface_slug_volume: float
    second_slug_volume: float
    active_mud_volume: float
    second_slug_density: float
    second_slug_density_calculated: float
    second_slug_density_was_calculated: bool
    effective_esd: float
    surface_slug_drop_height: float
    second_slug_drop_height: float
    surface_slug_bottom_md: float
    heel_md: float
    heel_tvd: float
    control_tvd: float
    kill_mud_height: float
    surface_slug_height: float
    active_mud_height: float
    second_slug_height: float
    original_mud_height: float
    annulus_layers: Tuple[FluidSegment, ...]
    esd_at_control: float
    diagnostics: Tuple[Diagnostic, ...] = ()
    valid: bool = True


def _column(kill_rho, bounds, inp, second_rho):
    """ Annulus FluidSegments from surface for a trial kill mud density """
    kill_bot, slug_bot, second_top, heel, control = bounds
    spans = [(0.0, kill_bot, FluidIdentity(kill_rho, name='Kill mud')),
             (kill_bot, slug_bot, FluidIdentity(inp.surface_slug_density, name='Surface slug')),
             (slug_bot, second_top, FluidIdentity(inp.base_mud_density, name='Active mud')),
             (second_top, heel, FluidIdentity(second_rho, name='Second slug')),
             (heel, control, FluidIdentity(inp.base_mud_density, name='Original mud'))]
    return [FluidSegment(a, b, f) for a, b, f in spans if b > a + c.EPS]


def _height(tvd, top, bottom):
    return max(0.0, tvd(bottom) - tvd(top)) if bottom > top else 0.0


def optimize_kill_mud(kill_input, geometry, tvd, survey=None):
    """ Solves the kill mud density that holds kill_input.target_esd at the control depth
        once the slugs have dropped and the pipe is out of the hole.

        kill_input: KillMudInput
        geometry: Geometry provider (see WellGeometry)
        tvd: Callable MD -> TVD (m)
        survey: Optional (md, inc, tvd) arrays used to find the heel when kill_input.heel_md is not given

        Slug drop for each slug is (slug density - effective ESD) x slug TVD height / effective ESD,
        converted to volume with the string capacity at surface. Annulus layer lengths use the
        annulus capacity at surface. The density is found with brentq between 800 and 2500 kg/m³
        and clamped to that range, with a diagnostic, when the target cannot be met inside it.
    """
    inp = kill_input
    inp.validate()
    diagnostics = []

    def warn(code, msg):
        logger.warning(msg)
        diagnostics.append(Diagnostic(code, msg, inp.start_bit_md))

    heel = None
    if inp.heel_md is not None:
        heel = (inp.heel_md, tvd(inp.heel_md))
    elif survey is not None:
        heel = find_heel_depth(*survey)
    if heel is None:
        md = inp.start_bit_md * c.HEEL_FALLBACK_FRACTION
        heel = (md, tvd(md))
        warn('HEEL_ESTIMATED', f"No heel found in the survey; using {md:.0f} m ({c.HEEL_FALLBACK_FRACTION:.0%} of bit depth)")
    heel_md, heel_tvd = heel
    if heel_tvd <= 0:
        raise ValueError("Heel TVD must be positive, got " + str(heel_tvd))

    crack_rho = inp.crack_pressure_kpa / heel_tvd / c.GRAD
    second_calc = 2.0 * inp.target_esd - inp.base_mud_density + crack_rho
    second_rho = second_calc if inp.second_slug_density is None else inp.second_slug_density
    effective = inp.target_esd + crack_rho
    control_tvd = tvd(inp.control_md)

    # Slugs in the string before the trip
    slug_bot_str = geometry.length_for_string_volume(0.0, inp.surface_slug_volume)
    second_vol = geometry.volume_in_string(slug_bot_str, heel_md) if heel_md > slug_bot_str else 0.0
    slug_bot_tvd = tvd(slug_bot_str)
    surface_drop = (inp.surface_slug_density - effective) * slug_bot_tvd / effective
    second_drop = (second_rho - effective) * (heel_tvd - slug_bot_tvd) / effective
    drop_calc = max(0.0, surface_drop + second_drop) * geometry.string_area(0.0)
    drop = drop_calc if inp.observed_slug_drop is None else inp.observed_slug_drop

    steel = geometry.volume_of_string_od(0.0, inp.start_bit_md) - geometry.volume_in_string(0.0, inp.start_bit_md)
    kill_vol = steel + drop

    # Annulus after the trip
    cap = max(geometry.annulus_area(0.0), 0.001)
    kill_bot = kill_vol / cap
    slug_bot = kill_bot + inp.surface_slug_volume / cap
    second_top = heel_md - second_vol / cap
    if second_top < slug_bot:
        warn('SLUG_OVERLAP', f"Second slug top ({second_top:.0f} m) is above the surface slug bottom "
                             f"({slug_bot:.0f} m); the overlap is counted once")
        second_top = min(slug_bot, heel_md)
    bounds = (kill_bot, slug_bot, second_top, heel_md, max(inp.control_md, heel_md))

    def esd_for(rho):
        return equivalent_density(_column(rho, bounds, inp, second_rho), inp.control_md, tvd)

    kill_height = _height(tvd, 0.0, kill_bot)
    if kill_height <= c.MIN_KILL_HEIGHT:
        rho = inp.base_mud_density
        warn('KILL_HEIGHT_SMALL', f"Kill mud height {kill_height:.2f} m is too small; using base mud density")
    elif esd_for(c.KILL_RHO_MIN) > inp.target_esd:
        rho = c.KILL_RHO_MIN
        warn('KILL_DENSITY_LOW', f"Even {c.KILL_RHO_MIN:.0f} kg/m³ kill mud overshoots the target; "
                                 f"the slugs are overcompensating")
    elif esd_for(c.KILL_RHO_MAX) < inp.target_esd:
        rho = c.KILL_RHO_MAX
        warn('KILL_DENSITY_CLAMPED', f"Kill mud density clamped to {c.KILL_RHO_MAX:.0f} kg/m³; check inputs")
    else:
        rho = brentq(lambda r: esd_for(r) - inp.target_esd, c.KILL_RHO_MIN, c.KILL_RHO_MAX, xtol=1e-9)
        if rho < c.KILL_RHO_LOW_WARN:
            warn('KILL_DENSITY_LOW', f"Kill mud density {rho:.0f} kg/m³ is very low; heavy slugs may be overcompensating")

    layers = _column(rho, bounds, inp, second_rho)
    esd = equivalent_density(layers, inp.control_md, tvd)
    valid = abs(esd - inp.target_esd) < 0.01
    logger.info("Kill mud %.1f kg/m3, %.2f m3 (steel %.2f m3 + slug drop %.2f m3); ESD at control %.1f kg/m3",
                rho, kill_vol, steel, drop, esd)

    return KillMudResult(
        kill_mud_density=rho, kill_mud_volume=kill_vol, steel_displacement=steel,
        slug_drop_volume=drop, slug_drop_calculated=drop_calc,
        surface_slug_volume=inp.surface_slug_volume, second_slug_volume=second_vol,
        active_mud_volume=max(0.0, second_top - slug_bot) * cap,
        second_slug_density=second_rho, second_slug_density_calculated=second_calc,
        second_slug_density_was_calculated=inp.second_slug_density is None,
        effective_esd=effective, surface_slug_drop_height=surface_drop, second_slug_drop_height=second_drop,
        surface_slug_bottom_md=slug_bot_str, heel_md=heel_md, heel_tvd=heel_tvd, control_tvd=control_tvd,
        kill_mud_height=kill_height, surface_slug_height=_height(tvd, kill_bot, slug_bot),
        active_mud_height=_height(tvd, slug_bot, second_top), second_slug_height=_height(tvd, second_top, heel_md),
        original_mud_height=_height(tvd, heel_md, inp.control_md),
        annulus_layers=tuple(layers), esd_at_control=esd, diagnostics=tuple(diagnostics), valid=valid)
