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

import numpy as np
from scipy.optimize import brentq

from pywellcontrol.constants import constants as c

logger = logging.getLogger(__name__)


class AnnulusSection:
    """ Open hole or casing interval.
        top: Top measured depth (m)
        bottom: Bottom measured depth (m)
        inner_diameter: Hole or casing ID (m)
        name: Optional label
    """
    def __init__(self, top, bottom, inner_diameter, name=None):
        if bottom <= top:
            raise ValueError(f"Annulus section bottom ({bottom}) must be deeper than top ({top})")
        if top < 0:
            raise ValueError(f"Annulus section top must not be negative, got {top}")
        if inner_diameter <= 0:
            raise ValueError(f"Annulus section inner_diameter must be positive, got {inner_diameter}")
        self.top = top
        self.bottom = bottom
        self.inner_diameter = inner_diameter
        self.name = name


class DrillStringSection:
    """ Drill string component interval, measured with the bit at its deepest position.
        top: Top measured depth (m)
        bottom: Bottom measured depth (m)
        outer_diameter: Pipe OD (m)
        inner_diameter: Pipe ID (m)
        name: Optional label
    """
    def __init__(self, top, bottom, outer_diameter, inner_diameter, name=None):
        if bottom <= top:
            raise ValueError(f"String section bottom ({bottom}) must be deeper than top ({top})")
        if top < 0:
            raise ValueError(f"String section top must not be negative, got {top}")
        if outer_diameter <= 0 or inner_diameter < 0:
            raise ValueError("String section diameters must be positive")
        if inner_diameter >= outer_diameter:
            raise ValueError(f"String section inner_diameter ({inner_diameter}) must be less than outer_diameter ({outer_diameter})")
        self.top = top
        self.bottom = bottom
        self.outer_diameter = outer_diameter
        self.inner_diameter = inner_diameter
        self.name = name


def _circle_area(d):
    return np.pi * d * d / 4.0


def _lookup(sections, md, attr):
    """ Diameter of the section covering md. Depths outside every section take the nearest section """
    for sec in sections:
        if sec.top <= md <= sec.bottom:
            return getattr(sec, attr)
    if not sections:
        return 0.0
    if md < sections[0].top:
        return getattr(sections[0], attr)
    return getattr(min(sections, key=lambda s: min(abs(md - s.top), abs(md - s.bottom))), attr)


class WellGeometry:
    """ Section-table geometry provider for string and annulus volumes.

        Areas are piecewise constant between section boundaries, so each cumulative
        volume is piecewise linear in MD and volumes are differences of cumulative values.
        Depths beyond the deepest section continue with the deepest section's areas.

        annulus: List of AnnulusSection
        string: List of DrillStringSection
    """
    def __init__(self, annulus, string):
        if not annulus:
            raise ValueError("At least one AnnulusSection is required")
        if not string:
            raise ValueError("At least one DrillStringSection is required")
        self.annulus = sorted(annulus, key=lambda s: s.top)
        self.string = sorted(string, key=lambda s: s.top)

        bps = {0.0}
        for sec in self.annulus + self.string:
            bps.add(float(sec.top))
            bps.add(float(sec.bottom))
        bps = np.array(sorted(bps))
        mids = 0.5 * (bps[1:] + bps[:-1])
        hole = np.array([self.hole_diameter(m) for m in mids])
        od = np.array([self.pipe_od(m) for m in mids])
        pid = np.array([self.pipe_id(m) for m in mids])
        areas = {
            'string': _circle_area(pid),
            'annulus': np.maximum(0.0, _circle_area(hole) - _circle_area(od)),
            'od': _circle_area(od),
            'steel': _circle_area(od) - _circle_area(pid),
        }
        # Extend past the deepest boundary with the last interval's areas
        self._tail = bps[-1]
        self._bps = np.append(bps, bps[-1] + 1.0)
        self._areas = {}
        self._cum = {}
        for k, a in areas.items():
            a = np.append(a, a[-1] if len(a) else 0.0)
            self._areas[k] = a
            self._cum[k] = np.concatenate(([0.0], np.cumsum(a * np.diff(self._bps))))

    # ---- Section lookups -------------------------------------------------

    def hole_diameter(self, md):
        return _lookup(self.annulus, md, 'inner_diameter')

    def pipe_od(self, md):
        return _lookup(self.string, md, 'outer_diameter')

    def pipe_id(self, md):
        return _lookup(self.string, md, 'inner_diameter')

    # ---- Areas -----------------------------------------------------------

    def _area(self, kind, md):
        idx = int(np.searchsorted(self._bps, md, side='right')) - 1
        idx = min(max(idx, 0), len(self._areas[kind]) - 1)
        return float(self._areas[kind][idx])

    def annulus_area(self, md):
        return self._area('annulus', md)

    def string_area(self, md):
        return self._area('string', md)

    def steel_displacement_area(self, md):
        return self._area('steel', md)

    # ---- Volumes ---------------------------------------------------------

    def _cumulative(self, kind, md):
        md = max(0.0, float(md))
        if md <= self._tail:
            return float(np.interp(md, self._bps, self._cum[kind]))
        return float(self._cum[kind][-2] + self._areas[kind][-1] * (md - self._tail))

    def _volume(self, kind, top, bottom):
        if bottom <= top:
            return 0.0
        return max(0.0, self._cumulative(kind, bottom) - self._cumulative(kind, top))

    def volume_in_string(self, top, bottom):
        return self._volume('string', top, bottom)

    def volume_in_annulus(self, top, bottom):
        return self._volume('annulus', top, bottom)

    def volume_of_string_od(self, top, bottom):
        """ Closed-end pipe displacement, capacity plus steel (m³) """
        return self._volume('od', top, bottom)

    # ---- Inverses --------------------------------------------------------

    def _length_for_volume(self, kind, from_md, volume):
        if volume <= c.EPS_V:
            return 0.0
        target = self._cumulative(kind, from_md) + volume
        hi = max(1.0, volume / max(self._areas[kind].max(), c.EPS_V))
        tries = 0
        while self._cumulative(kind, from_md + hi) < target:
            hi *= 2.0
            tries += 1
            if tries > 60:
                logger.warning("No %s length found for volume %.4g m3 from %.1f m", kind, volume, from_md)
                return hi
        return brentq(lambda x: self._cumulative(kind, from_md + x) - target, 0.0, hi, xtol=1e-10)

    def length_for_string_volume(self, from_md, volume):
        return self._length_for_volume('string', from_md, volume)

    def length_for_annulus_volume(self, from_md, volume):
        return self._length_for_volume('annulus', from_md, volume)


class TvdSampler:
    """ MD to TVD interpolation from survey stations.
        Stations are sorted by MD, duplicate MDs dropped and TVD forced non-decreasing.
        Depths outside the survey are clamped to the end stations.
    """
    def __init__(self, md, tvd):
        md = np.asarray(md, dtype=float)
        tvd = np.asarray(tvd, dtype=float)
        if md.shape != tvd.shape or md.size == 0:
            raise ValueError("md and tvd must be non-empty arrays of equal length")
        order = np.argsort(md, kind='stable')
        md, tvd = md[order], tvd[order]
        md, keep = np.unique(md, return_index=True)
        tvd = tvd[keep]
        self.md = md
        self.tvd = np.maximum.accumulate(tvd)

    def __call__(self, md):
        return float(np.interp(md, self.md, self.tvd))


def vertical(md):
    """ Depth sampler for a vertical well """
    return max(0.0, float(md))
