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

from dataclasses import dataclass

from pywellcontrol.constants import constants as c
from pywellcontrol.fluid import FluidIdentity


@dataclass(frozen=True)
class LayerRow:
    """ One fluid interval as recorded in a step snapshot.

        side: 'String', 'Annulus' or 'Pocket'
        top_md, bottom_md: Measured depths (m)
        top_tvd, bottom_tvd: True vertical depths (m)
        fluid: FluidIdentity of the interval
        delta_p: Hydrostatic contribution (kPa)
        volume: Interval volume (m³)
    """
    side: str
    top_md: float
    bottom_md: float
    top_tvd: float
    bottom_tvd: float
    fluid: FluidIdentity
    delta_p: float
    volume: float

    @property
    def density(self):
        return self.fluid.density

    @property
    def top(self):
        return self.top_md

    @property
    def bottom(self):
        return self.bottom_md

    @classmethod
    def seed(cls, top, bottom, fluid, side=''):
        """ Seed-state layer for chained runs, without TVD or pressure detail """
        return cls(side, float(top), float(bottom), 0.0, 0.0, fluid, 0.0, 0.0)


@dataclass(frozen=True)
class Totals:
    count: int
    tvd: float
    delta_p: float


def hydrostatic_pressure(segments, target_md, tvd):
    """ Hydrostatic pressure (kPa) of the column above target_md.

        segments: Iterable of objects with top, bottom and density attributes
        target_md: Depth the column is integrated to (m). Segments crossing it are clipped
        tvd: Callable MD -> TVD (m)
    """
    p = 0.0
    for seg in segments:
        a = max(0.0, min(seg.top, target_md))
        b = max(0.0, min(seg.bottom, target_md))
        if b <= a:
            continue
        dh = max(0.0, tvd(b) - tvd(a))
        p += seg.density * c.GRAD * dh
    return p


def pressure_to_density(pressure, tvd_depth):
    """ Equivalent density (kg/m³) of a pressure (kPa) at a vertical depth. Zero when depth <= 0 """
    if tvd_depth <= 0:
        return 0.0
    return pressure / (c.GRAD * tvd_depth)


def density_to_pressure(density, tvd_depth):
    return density * c.GRAD * max(0.0, tvd_depth)


def equivalent_density(segments, target_md, tvd, surface_pressure=0.0):
    """ Equivalent static density (kg/m³) at target_md, including any surface back pressure (kPa) """
    tvd_target = tvd(target_md)
    if tvd_target <= 0:
        return 0.0
    return pressure_to_density(hydrostatic_pressure(segments, target_md, tvd) + surface_pressure, tvd_target)


def required_back_pressure(target_esd, current_esd, tvd_depth):
    """ Surface back pressure (kPa) lifting current_esd to target_esd at tvd_depth. Never negative """
    if tvd_depth <= 0:
        return 0.0
    return max(0.0, (target_esd - current_esd) * c.GRAD * tvd_depth)


def required_sabp_for_target(target_esd, depth_tvd, hydrostatic, friction=0.0):
    """ Surface back pressure (kPa) so that hydrostatic + friction + SABP matches target_esd at depth_tvd """
    if depth_tvd <= 0:
        return 0.0
    return max(0.0, density_to_pressure(target_esd, depth_tvd) - hydrostatic - friction)


def layer_rows(segments, side_label, bit_md, tvd, volume_fn, below_bit=False):
    """ LayerRows for segments above bit_md, or below it when below_bit is set (pocket) """
    rows = []
    for seg in segments:
        if below_bit:
            a, b = max(seg.top, bit_md), seg.bottom
        else:
            a, b = max(0.0, seg.top), min(bit_md, seg.bottom)
        if b - a <= c.EPS:
            continue
        t_top, t_bot = tvd(a), tvd(b)
        dp = seg.density * c.GRAD * max(0.0, t_bot - t_top)
        rows.append(LayerRow(side_label, a, b, t_top, t_bot, seg.fluid, dp, volume_fn(a, b)))
    return tuple(rows)


def totals(rows):
    tvd_span, dp = 0.0, 0.0
    for r in rows:
        tvd_span += max(0.0, r.bottom_tvd - r.top_tvd)
        dp += r.delta_p
    return Totals(len(rows), tvd_span, dp)


def esd_from_rows(row_groups, depth_tvd, surface_pressure=0.0):
    """ Equivalent density (kg/m³) from the hydrostatic sum of several row groups plus surface pressure """
    dp = sum(totals(rows).delta_p for rows in row_groups)
    return max(0.0, pressure_to_density(dp + surface_pressure, depth_tvd))
