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
from typing import List, Optional

from pywellcontrol.classes import side, stack_end
from pywellcontrol.config import DEFAULT_SETTINGS
from pywellcontrol.constants import constants as c
from pywellcontrol.errors import ContractViolation
from pywellcontrol.fluid import ColorRGBA, FluidIdentity, FluidSegment, air, colors_match
from pywellcontrol.hydrostatics import hydrostatic_pressure, layer_rows
from pywellcontrol.shared_fns import bisect_max_feasible, weighted_mean

logger = logging.getLogger(__name__)

# =============================================================================
# Carved fluid
# =============================================================================

@dataclass(frozen=True)
class Carve:
    """ Fluid removed from the deep end of a stack, with volume weighted colour and rheology """
    length: float = 0.0
    volume: float = 0.0
    mass: float = 0.0
    color: Optional[ColorRGBA] = None
    pv_cp: float = 0.0
    yp_pa: float = 0.0

    @property
    def density(self):
        return self.mass / self.volume if self.volume > c.EPS_V else 0.0

    def fluid(self, default_density):
        rho = self.density if self.volume > c.EPS_V else default_density
        return FluidIdentity(density=rho, color=self.color, pv_cp=self.pv_cp, yp_pa=self.yp_pa)

    def plus(self, volume, density):
        """ Carve with extra volume at the given density, rheology unchanged """
        return Carve(self.length, self.volume + volume, self.mass + density * volume, self.color, self.pv_cp, self.yp_pa)


def blend_carves(carves, default_density):
    """ Volume weighted FluidIdentity of several carves """
    vol = sum(k.volume for k in carves)
    if vol <= c.EPS_V:
        return FluidIdentity(density=default_density)
    mass = sum(k.mass for k in carves)
    color = ColorRGBA.blend((k.color, k.volume) for k in carves)
    pv = weighted_mean((k.pv_cp, k.volume) for k in carves)
    yp = weighted_mean((k.yp_pa, k.volume) for k in carves)
    return FluidIdentity(density=mass / vol, color=color, pv_cp=pv, yp_pa=yp)

# =============================================================================
# Depth indexed stack
# =============================================================================

class Stack:
    """ Ordered fluid segments of one conduit, shallow to deep, covering [0, bit].

        Every mutating operation leaves the segments sorted, disjoint and contiguous from
        surface to the bit, with like neighbours merged. Segments are copied on the way in
        and out, so a Stack never shares segment objects with a caller or another Stack.

        conduit: side.STRING or side.ANNULUS (or 'STRING' / 'ANNULUS')
        geometry: Geometry provider (see WellGeometry)
        tvd: Callable MD -> TVD
        settings: SimulationSettings. Defaults to DEFAULT_SETTINGS
    """
    def __init__(self, conduit, geometry, tvd, settings=None):
        if isinstance(conduit, str):
            conduit = side[conduit.upper()]
        self.side = conduit
        self.geometry = geometry
        self.tvd = tvd
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self._segs: List[FluidSegment] = []

    # ---- Read access -----------------------------------------------------

    @property
    def segments(self):
        return tuple(s.copy() for s in self._segs)

    def __len__(self):
        return len(self._segs)

    @property
    def is_string(self):
        return self.side == side.STRING

    @property
    def label(self):
        return 'String' if self.is_string else 'Annulus'

    def volume(self, top, bottom):
        if self.is_string:
            return self.geometry.volume_in_string(top, bottom)
        return self.geometry.volume_in_annulus(top, bottom)

    def total_volume(self):
        return sum(self.volume(s.top, s.bottom) for s in self._segs)

    def rows(self, bit_md):
        return layer_rows(self._segs, self.label, bit_md, self.tvd, self.volume)

    def _length_from_surface(self, volume):
        if self.is_string:
            return self.geometry.length_for_string_volume(0.0, volume)
        return self.geometry.length_for_annulus_volume(0.0, volume)

    def _require(self, conduit, what):
        if self.side != conduit:
            raise ContractViolation(f"{what} applies to the {conduit.name} stack only, called on {self.side.name}")

    # ---- Seeding ---------------------------------------------------------

    def seed_uniform(self, fluid, top, bottom):
        self._segs = [FluidSegment(min(top, bottom), max(top, bottom), fluid)]

    def assign(self, layers, bit_md):
        """ Replace contents with copies of layers (anything with top, bottom and fluid) """
        self._segs = [FluidSegment(l.top, l.bottom, l.fluid) for l in layers]
        self.ensure_invariants(bit_md)

    # ---- Depth operations ------------------------------------------------

    def split_at(self, md):
        """ Divides the segment strictly containing md. No-op on a boundary or an empty stack """
        eps = self.settings.epsilon
        for i, seg in enumerate(self._segs):
            if seg.top + eps < md < seg.bottom - eps:
                self._segs.insert(i + 1, FluidSegment(md, seg.bottom, seg.fluid))
                seg.bottom = md
                return

    def paint_interval(self, top, bottom, fluid):
        """ Sets the fluid of every segment inside [top, bottom] """
        if bottom <= top:
            return
        self.split_at(top)
        self.split_at(bottom)
        eps = self.settings.epsilon
        for seg in self._segs:
            if seg.top >= top - eps and seg.bottom <= bottom + eps:
                seg.fluid = fluid
        bit = self._segs[-1].bottom if self._segs else bottom
        self.ensure_invariants(bit)

    def translate(self, delta, bit_md):
        """ Shifts every segment by delta (m, positive deeper) """
        if not self._segs or abs(delta) <= self.settings.volume_epsilon:
            return
        for seg in self._segs:
            seg.top += delta
            seg.bottom += delta
        self.ensure_invariants(bit_md)

    def reanchor_to_bit(self, new_bit_md):
        """ Restacks segments, lengths unchanged, so the column ends at new_bit_md """
        if not self._segs:
            return
        total = sum(s.length for s in self._segs)
        cursor = max(0.0, new_bit_md - total)
        for seg in self._segs:
            ln = seg.length
            seg.top = cursor
            cursor += ln
            seg.bottom = cursor
        self.ensure_invariants(new_bit_md)

    def extend_to_bit(self, segments, new_bit_md):
        """ Appends copies of segments below the current column, which then ends at new_bit_md """
        self._segs.extend(FluidSegment(s.top, s.bottom, s.fluid) for s in segments)
        self.ensure_invariants(new_bit_md)

    def rescale_to_bit(self, new_bit_md):
        """ Stretches or shrinks the column to [0, new_bit_md], keeping each segment's fractional length """
        if not self._segs:
            return
        old = self._segs[-1].bottom
        if old <= self.settings.epsilon:
            return
        k = new_bit_md / old
        for seg in self._segs:
            seg.top *= k
            seg.bottom *= k
        self.ensure_invariants(new_bit_md)

    # ---- Volume operations -----------------------------------------------

    def _prepend(self, fluid, length, bit_md):
        eps = self.settings.epsilon
        head = self._segs[0] if self._segs else None
        if head is not None and abs(head.top) < eps and head.fluid.matches(fluid, self.settings.density_merge_tolerance):
            head.bottom += length
            rest = self._segs[1:]
        else:
            self._segs.insert(0, FluidSegment(0.0, length, fluid))
            rest = self._segs[1:]
        for seg in rest:
            seg.top += length
            seg.bottom += length
        self.ensure_invariants(bit_md)

    def add_from_surface(self, fluid, volume, bit_md):
        """ Adds volume (m³) of fluid at surface, pushing existing segments deeper. Fluid pushed past the bit is lost """
        if volume <= self.settings.volume_epsilon:
            return 0.0
        length = self._length_from_surface(volume)
        if length <= self.settings.volume_epsilon:
            return 0.0
        self._prepend(fluid, length, bit_md)
        return length

    def add_air_from_surface(self, volume, bit_md):
        """ Fills the top of a draining string with air """
        self._require(side.STRING, "Air fill from surface")
        return self.add_from_surface(air(self.settings.air_density), volume, bit_md)

    def inject_at_bit_push_uphole(self, fluid, volume, bit_md):
        """ Adds volume (m³) of fluid at the bit, shifting the column toward surface.
            Returns the volume overflowing at surface (m³)
        """
        self._require(side.ANNULUS, "Injection at the bit")
        if volume <= self.settings.volume_epsilon:
            return 0.0
        length = self._length_up_from(bit_md, volume)
        if length <= self.settings.volume_epsilon:
            return 0.0
        for seg in self._segs:
            seg.top = max(0.0, seg.top - length)
            seg.bottom = max(0.0, seg.bottom - length)
        new_top = max(0.0, bit_md - length)
        tail = self._segs[-1] if self._segs else None
        if (tail is not None and abs(tail.bottom - new_top) < self.settings.epsilon
                and tail.fluid.matches(fluid, self.settings.density_merge_tolerance)):
            tail.bottom = bit_md
        else:
            self._segs.append(FluidSegment(new_top, bit_md, fluid))
        self.ensure_invariants(bit_md)
        overflow = self.geometry.volume_in_annulus(0.0, min(length, bit_md))
        return min(volume, overflow)

    def _length_up_from(self, md, volume):
        """ Annulus length above md holding volume, by bisection """
        if self.geometry.volume_in_annulus(0.0, md) <= volume:
            return md
        return bisect_max_feasible(lambda ln: self.geometry.volume_in_annulus(md - ln, md), 0.0, md, volume,
                                   self.settings.length_bisection_iterations)

    def drain_from_bottom(self, volume, bit_md):
        """ Removes up to volume (m³) from the deepest string segment.
            Returns (drained volume, fluid drained), or (0.0, None) when nothing could drain
        """
        self._require(side.STRING, "Drain at the bit")
        if volume <= self.settings.volume_epsilon or not self._segs:
            return 0.0, None
        seg = self._segs[-1]
        seg_vol = self.volume(seg.top, seg.bottom)
        drained = min(volume, seg_vol)
        if drained <= self.settings.volume_epsilon:
            return 0.0, None
        ln = drained / seg_vol * seg.length
        if ln <= self.settings.volume_epsilon:
            return 0.0, None
        seg.bottom -= ln
        if seg.length < self.settings.epsilon:
            self._segs.pop()
        return drained, seg.fluid

    def take_bottom_by_length(self, length):
        """ Removes length (m) from the deep end of the column. Returns a Carve """
        remaining = length
        tot_len = tot_vol = tot_mass = 0.0
        colors, pvs, yps = [], [], []
        while remaining > self.settings.epsilon and self._segs:
            seg = self._segs.pop()
            span = seg.length
            if span <= self.settings.volume_epsilon:
                continue
            take = min(span, remaining)
            vol = self.volume(seg.bottom - take, seg.bottom)
            tot_len += take
            tot_vol += vol
            tot_mass += seg.density * vol
            colors.append((seg.color, vol))
            pvs.append((seg.fluid.pv_cp, vol))
            yps.append((seg.fluid.yp_pa, vol))
            seg.bottom -= take
            if seg.length > self.settings.volume_epsilon:
                self._segs.append(seg)
            remaining -= take
        return Carve(tot_len, tot_vol, tot_mass, ColorRGBA.blend(colors), weighted_mean(pvs), weighted_mean(yps))

    # ---- Pressure --------------------------------------------------------

    def pressure_at_bit(self, bit_md, sabp=0.0):
        """ Hydrostatic pressure at the bit (kPa). Surface back pressure only acts on the annulus """
        p = 0.0 if self.is_string else sabp
        return p + hydrostatic_pressure(self._segs, bit_md, self.tvd)

    # ---- Invariants ------------------------------------------------------

    def ensure_invariants(self, bit_md):
        """ Clamps to [0, bit_md], drops degenerate segments, sorts, then walks down from surface:
            a segment ending above the column built so far is dropped, the rest start where the
            previous one ends. The deepest segment is stretched to bit_md and like neighbours merge.
        """
        if not self._segs:
            return
        eps_v = self.settings.volume_epsilon
        for seg in self._segs:
            seg.top = max(0.0, min(seg.top, bit_md))
            seg.bottom = max(0.0, min(seg.bottom, bit_md))
        self._segs = [s for s in self._segs if s.length > eps_v]
        self._segs.sort(key=lambda s: s.top)
        if not self._segs:
            return
        kept, cursor = [], 0.0
        for seg in self._segs:
            if seg.bottom <= cursor + eps_v:
                continue
            seg.top = cursor
            cursor = seg.bottom
            kept.append(seg)
        self._segs = kept
        self._segs[-1].bottom = max(self._segs[-1].bottom, bit_md)
        merged = [self._segs[0]]
        for seg in self._segs[1:]:
            last = merged[-1]
            if last.fluid.matches(seg.fluid, self.settings.density_merge_tolerance):
                last.bottom = seg.bottom
            else:
                merged.append(seg)
        self._segs = [s for s in merged if s.length > eps_v]

# =============================================================================
# Volume indexed stack
# =============================================================================

class VolumeParcel:
    """ A volume (m³) of one fluid """
    __slots__ = ('volume', 'fluid')

    def __init__(self, volume, fluid: FluidIdentity):
        self.volume = float(volume)
        self.fluid = fluid

    @property
    def density(self):
        return self.fluid.density

    def copy(self):
        return VolumeParcel(self.volume, self.fluid)

    def __repr__(self):
        return f"VolumeParcel({self.volume:.4f} m3, {self.density:.1f} kg/m3)"


class ParcelStack:
    """ Volume indexed fluid column, held surface to bit for both conduits. Index 0 is the
        stack_end.TOP end (surface), the last parcel the stack_end.BOTTOM end (bit).

        parcels: Initial VolumeParcels, copied
        settings: SimulationSettings. Defaults to DEFAULT_SETTINGS
    """
    def __init__(self, parcels=None, settings=None):
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self._parcels = [p.copy() for p in parcels] if parcels else []

    @property
    def parcels(self):
        return tuple(p.copy() for p in self._parcels)

    def __len__(self):
        return len(self._parcels)

    @property
    def total_volume(self):
        return sum(max(0.0, p.volume) for p in self._parcels)

    def append(self, fluid, volume):
        """ Adds a parcel at the BOTTOM end, without overflow """
        if volume > self.settings.volume_epsilon:
            self._parcels.append(VolumeParcel(volume, fluid))

    def top_up(self, fluid, capacity, end=stack_end.BOTTOM):
        """ Fills any free capacity at the given end with fluid """
        end = stack_end[end.upper()] if isinstance(end, str) else end
        short = capacity - self.total_volume
        if short <= self.settings.epsilon:
            return
        if end == stack_end.TOP:
            self._parcels.insert(0, VolumeParcel(short, fluid))
        else:
            self._parcels.append(VolumeParcel(short, fluid))

    def push(self, end, fluid, volume, capacity):
        """ Inserts volume of fluid at one end. When the stack then holds more than capacity,
            whole or partial parcels leave the opposite end until it is back at capacity.
            Returns the expelled parcels in exit order.
        """
        end = stack_end[end.upper()] if isinstance(end, str) else end
        eps = self.settings.epsilon
        expelled = []
        volume = max(0.0, volume)
        if volume <= self.settings.volume_epsilon:
            return expelled
        if end == stack_end.TOP:
            self._parcels.insert(0, VolumeParcel(volume, fluid))
            out_idx = -1
        else:
            self._parcels.append(VolumeParcel(volume, fluid))
            out_idx = 0
        overflow = self.total_volume - max(0.0, capacity)
        while overflow > eps and self._parcels:
            p = self._parcels.pop(out_idx)
            v = max(0.0, p.volume)
            if v <= overflow + eps:
                expelled.append(p)
                overflow -= v
            else:
                expelled.append(VolumeParcel(overflow, p.fluid))
                rest = VolumeParcel(v - overflow, p.fluid)
                if out_idx == -1:
                    self._parcels.append(rest)
                else:
                    self._parcels.insert(0, rest)
                overflow = 0.0
        return expelled

    def push_to_top_and_overflow(self, fluid, volume, capacity):
        """ String: pumped fluid enters at surface, returns what leaves at the bit """
        return self.push(stack_end.TOP, fluid, volume, capacity)

    def push_to_bottom_and_overflow_top(self, fluid, volume, capacity):
        """ Annulus: fluid enters at the bit, returns what leaves at surface """
        return self.push(stack_end.BOTTOM, fluid, volume, capacity)

    def coalesce(self, density_tol=None, color_tol=None):
        """ Merges adjacent parcels of similar density and colour """
        density_tol = self.settings.parcel_density_tolerance if density_tol is None else density_tol
        color_tol = self.settings.parcel_color_tolerance if color_tol is None else color_tol
        if len(self._parcels) < 2:
            return
        out = [self._parcels[0]]
        for p in self._parcels[1:]:
            last = out[-1]
            if abs(last.density - p.density) < density_tol and colors_match(last.fluid.color, p.fluid.color, color_tol):
                last.volume += p.volume
            else:
                out.append(p)
        self._parcels = out

    # ---- Layer conversions -----------------------------------------------

    @classmethod
    def _from_layers(cls, layers, bit_md, volume_fn, settings):
        out = cls(settings=settings)
        eps = out.settings.epsilon
        for l in sorted(layers, key=lambda x: x.top):
            top, bot = max(0.0, l.top), min(l.bottom, bit_md)
            if bot > top + eps:
                out.append(l.fluid, volume_fn(top, bot))
        return out

    @classmethod
    def from_string_layers(cls, layers, bit_md, geometry, settings=None):
        """ String parcels from depth layers above the bit """
        return cls._from_layers(layers, bit_md, geometry.volume_in_string, settings)

    @classmethod
    def from_annulus_layers(cls, layers, bit_md, geometry, settings=None):
        """ Annulus parcels from depth layers above the bit """
        return cls._from_layers(layers, bit_md, geometry.volume_in_annulus, settings)

    def to_string_segments(self, bit_md, geometry):
        eps, eps_v = self.settings.epsilon, self.settings.volume_epsilon
        segs, cur = [], 0.0
        for p in self._parcels:
            if p.volume <= eps_v:
                continue
            ln = geometry.length_for_string_volume(cur, p.volume)
            bottom = min(cur + ln, bit_md)
            if bottom > cur + eps:
                segs.append(FluidSegment(cur, bottom, p.fluid))
                cur = bottom
            if cur >= bit_md - eps:
                break
        return segs

    def to_annulus_segments(self, bit_md, geometry):
        """ Stacks parcels up from the bit, so any shortfall in volume shows at surface """
        eps, eps_v = self.settings.epsilon, self.settings.volume_epsilon
        segs, used = [], 0.0
        for p in reversed(self._parcels):
            if p.volume <= eps_v:
                continue
            start = max(0.0, bit_md - used)
            if geometry.volume_in_annulus(0.0, start) <= p.volume:
                ln = start
            else:
                ln = bisect_max_feasible(lambda x: geometry.volume_in_annulus(start - x, start), 0.0, start, p.volume,
                                         self.settings.length_bisection_iterations)
            if ln <= eps:
                continue
            segs.append(FluidSegment(max(0.0, start - ln), start, p.fluid))
            used += ln
            if used >= bit_md - eps:
                break
        segs.sort(key=lambda s: s.top)
        return segs

    def to_string_layers(self, bit_md, geometry, tvd):
        return layer_rows(self.to_string_segments(bit_md, geometry), 'String', bit_md, tvd, geometry.volume_in_string)

    def to_annulus_layers(self, bit_md, geometry, tvd):
        return layer_rows(self.to_annulus_segments(bit_md, geometry), 'Annulus', bit_md, tvd, geometry.volume_in_annulus)


# =============================================================================
# Open hole below the bit
# =============================================================================

class OpenHolePocket:
    """ Fluid segments in the open hole below the bit, shallow to deep.
        Grows at its shallow end as the bit is pulled and is swallowed from its shallow end as the bit runs in.
    """
    def __init__(self, geometry, tvd, settings=None):
        self.geometry = geometry
        self.tvd = tvd
        self.settings = settings if settings is not None else DEFAULT_SETTINGS
        self._segs: List[FluidSegment] = []

    @property
    def segments(self):
        return tuple(s.copy() for s in self._segs)

    def __len__(self):
        return len(self._segs)

    @property
    def bottom(self):
        return self._segs[-1].bottom if self._segs else None

    def seed(self, layers, bit_md):
        """ Keeps the part of each layer below bit_md """
        self._segs = []
        for l in sorted(layers, key=lambda x: x.top):
            if l.bottom > bit_md + self.settings.epsilon:
                self._segs.append(FluidSegment(max(l.top, bit_md), l.bottom, l.fluid))

    def add_below_bit(self, bit_md, length, fluid):
        """ Places length (m) of fluid directly below bit_md, merging with a like neighbour
            by blending colour and rheology over length
        """
        if length <= self.settings.epsilon:
            return
        top, bot = bit_md, bit_md + length
        head = self._segs[0] if self._segs else None
        if (head is not None and abs(head.top - bot) < self.settings.epsilon
                and abs(head.density - fluid.density) < self.settings.density_merge_tolerance):
            l0, l1 = head.length, length
            color = ColorRGBA.blend(((head.color, l0), (fluid.color, l1)))
            pv = weighted_mean(((head.fluid.pv_cp, l0), (fluid.pv_cp, l1)))
            yp = weighted_mean(((head.fluid.yp_pa, l0), (fluid.yp_pa, l1)))
            head.fluid = FluidIdentity(density=fluid.density, color=color, pv_cp=pv, yp_pa=yp, name=head.fluid.name)
            head.top = top
        else:
            self._segs.insert(0, FluidSegment(top, bot, fluid))

    def fill_to(self, bit_md, td_md, fluid):
        """ Covers any unaccounted open hole between the pocket and td_md with fluid """
        cur = self._segs[-1].bottom if self._segs else bit_md
        if td_md > cur + self.settings.epsilon:
            self._segs.append(FluidSegment(cur, td_md, fluid))

    def take_top(self, new_bit_md):
        """ Removes everything above new_bit_md. Returns the removed segments shallow to deep """
        taken = []
        keep = []
        for seg in self._segs:
            if seg.bottom <= new_bit_md + self.settings.epsilon:
                taken.append(seg)
            elif seg.top < new_bit_md - self.settings.epsilon:
                taken.append(FluidSegment(seg.top, new_bit_md, seg.fluid))
                seg.top = new_bit_md
                keep.append(seg)
            else:
                keep.append(seg)
        self._segs = keep
        return taken

    def rows(self, bit_md):
        return layer_rows(self._segs, 'Pocket', bit_md, self.tvd, self.hole_volume, below_bit=True)

    def hole_volume(self, top, bottom):
        return self.geometry.volume_in_annulus(top, bottom) + self.geometry.volume_of_string_od(top, bottom)
