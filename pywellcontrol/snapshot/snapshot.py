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
from typing import Tuple

from pywellcontrol.fluid import ColorRGBA, FluidIdentity
from pywellcontrol.hydrostatics import LayerRow, Totals

LayerSnapshot = LayerRow


def fluid_from_record(rec):
    """ FluidIdentity from a dict with density and optional color, pv_cp, yp_pa, dial600, dial300, name.
        Dial readings without PV/YP give Bingham values from the dials.
    """
    if 'density' not in rec:
        raise ValueError("Layer record is missing 'density': " + str(rec))
    color = rec.get('color')
    if isinstance(color, str):
        color = ColorRGBA.from_hex(color)
    elif isinstance(color, (tuple, list)):
        color = ColorRGBA(*color)
    d600, d300 = rec.get('dial600'), rec.get('dial300')
    if d600 and d300 and not (rec.get('pv_cp') or rec.get('yp_pa')):
        return FluidIdentity.from_dials(rec['density'], d600, d300, color=color, name=rec.get('name'))
    return FluidIdentity(density=rec['density'], color=color, pv_cp=rec.get('pv_cp', 0.0) or 0.0,
                         yp_pa=rec.get('yp_pa', 0.0) or 0.0, dial600=d600, dial300=d300, name=rec.get('name'))


def _to_layer(item, side_label):
    if isinstance(item, dict):
        top, bottom = float(item['top']), float(item['bottom'])
        if bottom <= top:
            raise ValueError(f"Layer bottom ({bottom}) must be deeper than top ({top})")
        return LayerRow.seed(top, bottom, fluid_from_record(item), side_label)
    if isinstance(item, LayerRow):
        return item
    return LayerRow.seed(item.top, item.bottom, item.fluid, side_label)


@dataclass(frozen=True)
class ProjectSnapshot:
    """ Read-only copy of the well's final string and annulus fluid layers, taken before a run starts """
    string_layers: Tuple[LayerRow, ...] = ()
    annulus_layers: Tuple[LayerRow, ...] = ()

    @classmethod
    def from_layers(cls, string_layers=(), annulus_layers=()):
        """ From LayerRows, FluidSegments, or anything with top, bottom and fluid """
        return cls(tuple(sorted((_to_layer(l, 'String') for l in string_layers), key=lambda r: r.top_md)),
                   tuple(sorted((_to_layer(l, 'Annulus') for l in annulus_layers), key=lambda r: r.top_md)))

    @classmethod
    def from_records(cls, records):
        """ From dicts with 'side' ('string' or 'annulus'), 'top', 'bottom', 'density' and optional
            'color', 'pv_cp', 'yp_pa', 'dial600', 'dial300', 'name'
        """
        strs, anns = [], []
        for rec in records:
            which = str(rec.get('side', '')).lower()
            if which == 'string':
                strs.append(rec)
            elif which == 'annulus':
                anns.append(rec)
            else:
                raise ValueError("Layer record side must be 'string' or 'annulus', got " + repr(rec.get('side')))
        return cls.from_layers(strs, anns)

    @property
    def is_empty(self):
        return not self.string_layers and not self.annulus_layers


__all__ = ['LayerSnapshot', 'LayerRow', 'Totals', 'ProjectSnapshot', 'fluid_from_record']
