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
import math

import numpy as np

from pywellcontrol.classes import apl_method
from pywellcontrol.constants import constants as c
from pywellcontrol.errors import Diagnostic, MissingRheology
from pywellcontrol.validate import validate_methods

logger = logging.getLogger(__name__)

# =============================================================================
# Annular pressure loss
# =============================================================================

def _annular_velocity(q, dh, dp):
    """ Mean annular velocity (m/s) for q (m³/min) """
    area = np.pi / 4.0 * (dh * dh - dp * dp)
    if area <= 1e-9:
        return 0.0
    return (q / 60.0) / area


def apl_simplified(density, length, q, dh, dp):
    """ Empirical APL (kPa) = K × ρ × L × Q² / (Dh - Dp), Q in m³/min """
    gap = dh - dp
    if gap <= 1e-6 or q <= 0:
        return 0.0
    return c.APL_EMPIRICAL_K * density * length * q ** 2 / gap


def apl_bingham(length, q, dh, dp, pv_cp, yp_pa):
    """ Bingham plastic slot-flow APL (kPa) """
    gap = dh - dp
    if gap <= 1e-6:
        return 0.0
    v = _annular_velocity(q, dh, dp)
    grad = 4.0 * yp_pa / gap + 8.0 * (pv_cp / 1000.0) * v / gap ** 2
    return grad * length / 1000.0


def apl_from_kn(length, q, dh, dp, k, n):
    """ Power law APL (kPa) with Mooney-Rabinowitsch wall shear rate. K in Pa·sⁿ """
    if k <= 0 or n <= 0 or q <= 0:
        return 0.0
    gap = dh - dp
    if gap <= 1e-6:
        return 0.0
    v = _annular_velocity(q, dh, dp)
    gamma_w = ((3.0 * n + 1.0) / (4.0 * n)) * (8.0 * v / gap)
    tau_w = k * gamma_w ** n
    return 4.0 * tau_w / gap * length / 1000.0


def apl_power_law(length, q, dh, dp, dial600, dial300):
    if dial600 <= 0 or dial300 <= 0:
        return 0.0
    n = math.log(dial600 / dial300) / math.log(2.0)
    k = c.FANN_DIAL_TO_PA * dial600 / c.FANN_600_SHEAR ** n
    return apl_from_kn(length, q, dh, dp, k, n)


def _sub_intervals(top, bottom, step):
    n = max(1, int(math.ceil((bottom - top) / step)))
    edges = np.linspace(top, bottom, n + 1)
    return zip(edges[:-1], edges[1:])


class AplEstimator:
    """ Annular friction from the bit to surface for a layered annulus.

        method: apl_method or string. AUTO picks, per fluid, power law when dial readings exist,
                Bingham when PV or YP is set, otherwise the empirical correlation
        step: Integration interval (m)
    """
    def __init__(self, method=apl_method.AUTO, step=10.0):
        self.method = validate_methods(["aplmethod"], [method])
        self.step = step

    def _interval_apl(self, fluid, length, q, dh, dp):
        method = self.method
        if method == apl_method.AUTO:
            if fluid.has_dial_readings:
                method = apl_method.PLAW
            elif fluid.has_bingham:
                method = apl_method.BING
            else:
                method = apl_method.EMP
        if method == apl_method.PLAW:
            if not fluid.has_dial_readings:
                raise MissingRheology(f"Power law APL needs dial readings ({fluid.density:.0f} kg/m3 fluid has none)")
            return apl_power_law(length, q, dh, dp, fluid.dial600, fluid.dial300)
        if method == apl_method.BING:
            if not fluid.has_bingham:
                raise MissingRheology(f"Bingham APL needs PV/YP ({fluid.density:.0f} kg/m3 fluid has none)")
            return apl_bingham(length, q, dh, dp, fluid.pv_cp, fluid.yp_pa)
        return apl_simplified(fluid.density, length, q, dh, dp)

    def estimate(self, segments, bit_md, pump_rate, geometry):
        """ APL (kPa) for annulus segments above bit_md at pump_rate (m³/min) """
        if pump_rate <= c.MIN_FLOW_RATE:
            return 0.0
        total = 0.0
        for seg in segments:
            top, bot = max(0.0, seg.top), min(seg.bottom, bit_md)
            if bot <= top + c.EPS:
                continue
            for a, b in _sub_intervals(top, bot, self.step):
                mid = 0.5 * (a + b)
                dp = geometry.pipe_od(mid) or c.DEFAULT_PIPE_OD
                total += self._interval_apl(seg.fluid, b - a, pump_rate, geometry.hole_diameter(mid), dp)
        return total

# =============================================================================
# Swab and surge
# =============================================================================

def clinging_constant(pipe_od, hole_id):
    """ Burkhardt clinging constant, Kc = 0.45 + (Dp/Dh)² × 0.45 """
    if hole_id <= pipe_od or pipe_od <= 0:
        return c.CLINGING_BASE
    return c.CLINGING_BASE + (pipe_od / hole_id) ** 2 * c.CLINGING_BASE


def bingham_annular_gradient(rho, pv_pa_s, yp_pa, va, de):
    """ Pressure gradient (Pa/m) for Bingham flow at annular velocity va (m/s).
        Laminar slot flow, switching to a Fanning friction factor above the Hedstrom critical Reynolds number
    """
    gamma_w = max(8.0 * va / de, 0.01)
    tau_w = yp_pa + pv_pa_s * gamma_w
    lam = 2.0 * tau_w / de
    if pv_pa_s <= 0:
        return lam
    re_app = rho * va * de / (tau_w / gamma_w)
    he = rho * yp_pa * de * de / (pv_pa_s * pv_pa_s)
    re_crit = c.LAMINAR_RE * (1.0 + 0.05 * he ** 0.3)
    if re_app < re_crit or re_app <= 0:
        return lam
    f = 0.079 / re_app ** 0.25
    return max(lam, f * rho * va * va / (2.0 * de))


def _bingham_pair(fluid):
    """ (PV in Pa·s, YP in Pa) from PV/YP or dial readings, or None """
    if fluid.has_bingham:
        return fluid.pv_cp / 1000.0, fluid.yp_pa
    if fluid.has_dial_readings:
        pv = fluid.dial600 - fluid.dial300
        return pv / 1000.0, max(0.0, (fluid.dial300 - pv) * c.FANN_DIAL_TO_PA)
    return None


class SwabSurgeEstimator:
    """ Pressure change (kPa) in the annulus from pipe movement.

        step: Integration interval (m)
        clinging_override: Fixed clinging constant, None for Burkhardt per interval
    """
    def __init__(self, step=10.0, clinging_override=None):
        self.step = step
        self.clinging_override = clinging_override

    def estimate(self, segments, bit_md, trip_speed, geometry, tvd=None, float_open=False, eccentricity=1.0):
        """ Magnitude of swab or surge pressure (kPa) acting at the bit.

            segments: Annulus fluid segments
            bit_md: Bit depth (m)
            trip_speed: Pipe speed (m/min), sign ignored
            geometry: Geometry provider
            tvd: Unused, kept for the estimator contract
            float_open: Open float displaces steel only, closed float the full pipe OD
            eccentricity: Eccentricity factor, 1.0 for concentric pipe
        """
        if trip_speed == 0 or bit_md <= 0:
            return 0.0
        v_pipe = abs(trip_speed) / 60.0
        od_bit, id_bit = geometry.pipe_od(bit_md), geometry.pipe_id(bit_md)
        if od_bit <= 0:
            return 0.0
        disp = np.pi / 4.0 * (od_bit ** 2 - id_bit ** 2 if float_open else od_bit ** 2)

        total, rheology_seen = 0.0, False
        for seg in segments:
            top, bot = max(0.0, seg.top), min(seg.bottom, bit_md)
            if bot <= top + c.EPS:
                continue
            pair = _bingham_pair(seg.fluid)
            if pair is None:
                continue
            rheology_seen = True
            pv, yp = pair
            for a, b in _sub_intervals(top, bot, self.step):
                mid = 0.5 * (a + b)
                dh, dp = geometry.hole_diameter(mid), geometry.pipe_od(mid) or od_bit
                area = np.pi / 4.0 * (dh * dh - dp * dp)
                if area <= 0:
                    continue
                kc = self.clinging_override if self.clinging_override is not None else clinging_constant(dp, dh)
                va = v_pipe * (1.0 + kc) * (disp / area) * eccentricity
                total += bingham_annular_gradient(seg.density, pv, yp, va, dh - dp) * (b - a) / 1000.0
        if not rheology_seen:
            raise MissingRheology("No annulus fluid above the bit carries PV/YP or dial readings")
        return total

# =============================================================================
# Failure containment
# =============================================================================

def safe_estimate(fn, label, *args, diagnostics=None, md=None, **kwargs):
    """ Calls an estimator, turning any failure or non-finite result into a zero contribution.
        Failures are logged and, when a diagnostics list is given, recorded once per label.
    """
    try:
        val = float(fn(*args, **kwargs))
    except Exception as e:
        _record(label, f"{label} estimate failed: {e}", diagnostics, md)
        return 0.0
    if not math.isfinite(val):
        _record(label, f"{label} estimate was not finite ({val})", diagnostics, md)
        return 0.0
    return val


def _record(label, message, diagnostics, md):
    if diagnostics is None:
        logger.warning(message)
        return
    code = label.upper().replace(' ', '_').replace('/', '_') + '_FAILED'
    if any(d.code == code for d in diagnostics):
        logger.debug(message)
        return
    logger.warning(message)
    diagnostics.append(Diagnostic(code, message, md))
