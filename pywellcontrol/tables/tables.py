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

import pandas as pd
from tabulate import tabulate

from pywellcontrol.trip import TripResult
from pywellcontrol.circulation import CirculationResult


def layer_table(rows) -> pd.DataFrame:
    """ DataFrame of LayerRows, one row per fluid interval """
    df = pd.DataFrame()
    df["Side"] = [r.side for r in rows]
    df["Top MD (m)"] = [r.top_md for r in rows]
    df["Bottom MD (m)"] = [r.bottom_md for r in rows]
    df["Top TVD (m)"] = [r.top_tvd for r in rows]
    df["Bottom TVD (m)"] = [r.bottom_tvd for r in rows]
    df["Density (kg/m3)"] = [r.density for r in rows]
    df["Fluid"] = [r.fluid.name or "" for r in rows]
    df["dP (kPa)"] = [r.delta_p for r in rows]
    df["Volume (m3)"] = [r.volume for r in rows]
    return df


def trip_table(result: TripResult) -> pd.DataFrame:
    """ One row per recorded trip step """
    steps = result.steps
    dyn = "Swab (kPa)" if result.direction.name == "OUT" else "Surge (kPa)"
    df = pd.DataFrame()
    df["Bit MD (m)"] = [s.bit_md for s in steps]
    df["Bit TVD (m)"] = [s.bit_tvd for s in steps]
    df["SABP (kPa)"] = [s.sabp for s in steps]
    df["SABP Raw (kPa)"] = [s.sabp_raw for s in steps]
    df["SABP Dynamic (kPa)"] = [s.sabp_dynamic for s in steps]
    df[dyn] = [s.dynamic_pressure for s in steps]
    df["ESD TD (kg/m3)"] = [s.esd_at_td for s in steps]
    df["ESD Bit (kg/m3)"] = [s.esd_at_bit for s in steps]
    df["Float"] = [s.float_state for s in steps]
    df["Backfill (m3)"] = [s.step_backfill for s in steps]
    df["Cum Backfill (m3)"] = [s.cumulative_backfill for s in steps]
    df["Fill Closed (m3)"] = [s.expected_fill_if_closed for s in steps]
    df["Fill Open (m3)"] = [s.expected_fill_if_open for s in steps]
    df["Slug (m3)"] = [s.slug_contribution for s in steps]
    df["Pit Gain (m3)"] = [s.pit_gain for s in steps]
    df["Cum Pit Gain (m3)"] = [s.cumulative_pit_gain for s in steps]
    df["Tank Delta (m3)"] = [s.surface_tank_delta for s in steps]
    df["Cum Tank Delta (m3)"] = [s.cumulative_surface_tank_delta for s in steps]
    df["Backfill Remaining (m3)"] = [s.backfill_remaining for s in steps]
    return df


def circulation_table(result: CirculationResult) -> pd.DataFrame:
    """ One row per pumped volume increment """
    steps = result.steps
    df = pd.DataFrame()
    df["Step"] = [s.index for s in steps]
    df["Pumped (m3)"] = [s.volume_pumped_m3 for s in steps]
    df["Pumped (bbl)"] = [s.volume_pumped_bbl for s in steps]
    df["Strokes"] = [s.strokes for s in steps]
    df["ESD Control (kg/m3)"] = [s.esd_at_control for s in steps]
    df["Static SABP (kPa)"] = [s.static_sabp for s in steps]
    df["SABP (kPa)"] = [s.required_sabp for s in steps]
    df["dSABP (kPa)"] = [s.delta_sabp for s in steps]
    df["Cum dSABP (kPa)"] = [s.cumulative_delta_sabp for s in steps]
    df["Rate (m3/min)"] = [s.pump_rate for s in steps]
    df["APL (kPa)"] = [s.apl for s in steps]
    df["Returns (m3)"] = [s.returned_volume for s in steps]
    df["Description"] = [s.description for s in steps]
    return df


def summary(result, floatfmt=".1f") -> str:
    """ Plain text table of a trip or circulation result """
    if isinstance(result, TripResult):
        df = trip_table(result)
        df = df[["Bit MD (m)", "SABP (kPa)", df.columns[5], "ESD TD (kg/m3)", "Float", "Cum Backfill (m3)", "Cum Pit Gain (m3)"]]
    elif isinstance(result, CirculationResult):
        df = circulation_table(result)
        df = df[["Pumped (m3)", "ESD Control (kg/m3)", "SABP (kPa)", "Rate (m3/min)", "APL (kPa)", "Description"]]
    else:
        raise TypeError("summary expects a TripResult or CirculationResult, got " + type(result).__name__)
    return tabulate(df, headers=list(df.columns), showindex=False, floatfmt=floatfmt)
