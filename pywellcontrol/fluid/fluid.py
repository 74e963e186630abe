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

import math
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from pywellcontrol.constants import constants as c

# =============================================================================
# Colour
# =============================================================================

@dataclass(frozen=True)
class ColorRGBA:
    """ Display colour carried alongside a fluid. Components in [0, 1] """
    r: float = 0.5
    g: float = 0.5
    b: float = 0.5
    a: float = 1.0

    @classmethod
    def from_hex(cls, text):
        """ Parses '#RRGGBB' or '#RRGGBBAA'. Returns None for malformed input """
        if not isinstance(text, str):
            return None
        s = text.strip().lstrip('#')
        if len(s) not in (6, 8):
            return None
        try:
            vals = [int(s[i:i + 2], 16) / 255.0 for i in range(0, len(s), 2)]
        except ValueError:
            return None
        if len(vals) == 3:
            vals.append(1.0)
        return cls(*vals)

    def to_hex(self):
        return '#' + ''.join('%02X' % int(round(max(0.0, min(1.0, v)) * 255)) for v in (self.r, self.g, self.b, self.a))

    def close_to(self, other, tol):
        return (abs(self.r - other.r) <= tol and abs(self.g - other.g) <= tol
                and abs(self.b - other.b) <= tol and abs(self.a - other.a) <= tol)

    @staticmethod
    def blend(pairs: Iterable[Tuple[Optional['ColorRGBA'], float]]) -> Optional['ColorRGBA']:
        """ Weight-averaged colour of (color, weight) pairs, ignoring None colours """
        r = g = b = a = w = 0.0
        for col, wt in pairs:
            if col is None or wt <= 0:
                continue
            r += col.r * wt
            g += col.g * wt
            b += col.b * wt
            a += col.a * wt
            w += wt
        if w <= 0:
            return None
        return ColorRGBA(r / w, g / w, b / w, a / w)


def colors_match(c1, c2, tol=c.COLOR_TOL):
    if c1 is None and c2 is None:
        return True
    if c1 is None or c2 is None:
        return False
    return c1.close_to(c2, tol)

# =============================================================================
# Fluid identity
# =============================================================================

@dataclass(frozen=True)
class FluidIdentity:
    """ Density, colour and rheology of a single fluid.

        density: Density (kg/m³)
        color: Optional ColorRGBA for display
        pv_cp: Plastic viscosity (cP)
        yp_pa: Yield point (Pa)
        dial600: Fann 35 600 rpm reading
        dial300: Fann 35 300 rpm reading
        name: Optional label
    """
    density: float
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0
    dial600: Optional[float] = None
    dial300: Optional[float] = None
    name: Optional[str] = None

    @classmethod
    def from_dials(cls, density, dial600, dial300, color=None, name=None):
        """ Bingham PV/YP from Fann 35 readings, keeping the dials for power law fits """
        pv = dial600 - dial300
        yp = max(0.0, (dial300 - pv) * c.FANN_DIAL_TO_PA)
        return cls(density=density, color=color, pv_cp=pv, yp_pa=yp, dial600=dial600, dial300=dial300, name=name)

    @property
    def has_dial_readings(self):
        return self.dial600 is not None and self.dial300 is not None and self.dial600 > 0 and self.dial300 > 0

    @property
    def has_bingham(self):
        return self.pv_cp > 0 or self.yp_pa > 0

    def power_law_fit(self):
        """ Returns (n, K) with K in Pa·sⁿ from the dial readings, or None """
        if not self.has_dial_readings:
            return None
        n = math.log(self.dial600 / self.dial300) / math.log(2.0)
        k = c.FANN_DIAL_TO_PA * self.dial600 / (c.FANN_600_SHEAR ** n)
        return n, k

    def with_density(self, density):
        return replace(self, density=density)

    def matches(self, other, density_tol=c.RHO_MERGE_TOL, color_tol=c.COLOR_TOL):
        return abs(self.density - other.density) < density_tol and colors_match(self.color, other.color, color_tol)


def air(density=c.RHO_AIR):
    return FluidIdentity(density=density, name='Air')

# =============================================================================
# Fluid segment
# =============================================================================

class FluidSegment:
    """ A contiguous span of one fluid between two measured depths (m) """
    __slots__ = ('top', 'bottom', 'fluid')

    def __init__(self, top, bottom, fluid: FluidIdentity):
        self.top = float(top)
        self.bottom = float(bottom)
        self.fluid = fluid

    @property
    def density(self):
        return self.fluid.density

    @property
    def color(self):
        return self.fluid.color

    @property
    def length(self):
        return self.bottom - self.top

    def copy(self):
        return FluidSegment(self.top, self.bottom, self.fluid)

    def __eq__(self, other):
        if not isinstance(other, FluidSegment):
            return NotImplemented
        return self.top == other.top and self.bottom == other.bottom and self.fluid == other.fluid

    def __repr__(self):
        return f"FluidSegment({self.top:.3f}-{self.bottom:.3f} m, {self.density:.1f} kg/m3)"
