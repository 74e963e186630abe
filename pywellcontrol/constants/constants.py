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


# Constants
G = 9.81  # Gravity, m/s²
GRAD = G / 1000.0  # Hydrostatic gradient factor, kPa per (kg/m³ · m)
RHO_AIR = 1.2  # Density of air at surface conditions (kg/m³)
M3_TO_BBL = 6.28981  # Barrels per cubic metre

# Fann 35 viscometer
FANN_DIAL_TO_PA = 0.478802  # Dial reading to shear stress (Pa)
FANN_600_SHEAR = 1022.0  # Shear rate at 600 rpm (1/s)

# Swab / Surge
LAMINAR_RE = 2100.0  # Laminar flow threshold (generalized Reynolds number)
CLINGING_BASE = 0.45  # Burkhardt clinging constant base value

# APL
APL_EMPIRICAL_K = 5.0e-05  # APL = K × ρ × L × Q² / (Dh − Dp), kPa
MIN_FLOW_RATE = 0.001  # m³/min, below which friction is zero
DEFAULT_PIPE_OD = 0.127  # 5" drill pipe, m

# Numerical
EPS = 1e-9  # Depth comparisons (m)
EPS_V = 1e-12  # Volume and length no-op threshold
RHO_MERGE_TOL = 1e-6  # Neighbouring layers closer than this are merged (kg/m³)
PARCEL_RHO_TOL = 0.5  # Parcel coalescing density tolerance (kg/m³)
PARCEL_COLOR_TOL = 0.02  # Parcel coalescing colour tolerance
COLOR_TOL = 1e-9  # Layer colour equality tolerance

# Float valve
CRACK_KPA = 5.0  # Float cracking pressure (kPa)
PULSE_VOL = 0.01  # Equalization parcel (m³)
MAX_INIT_EQ_ITR = 10000
MAX_STEP_EQ_ITR = 1000

# Trip stepping
FINE_STEP = 1.0  # m
COARSE_STEP = 5.0  # m
COARSE_MARGIN_KPA = 50.0
RECORD_TOL = 0.01  # m
PROGRESS_INTERVAL = 100.0  # m
PROGRESS_ITR = 100

# Circulation
MAX_CIRC_POINTS = 200
MIN_CIRC_STEP = 0.5  # m³
PUMP_BISECT_ITR = 12
LENGTH_BISECT_ITR = 50  # Bisection iterations when converting annulus volume to length

# Kill mud optimizer
KILL_RHO_MIN = 800.0  # Lightest kill mud considered (kg/m³)
KILL_RHO_MAX = 2500.0  # Heaviest kill mud considered (kg/m³)
KILL_RHO_LOW_WARN = 1000.0  # Kill mud lighter than this is flagged (kg/m³)
MIN_KILL_HEIGHT = 0.1  # Kill mud TVD height below which base mud is used (m)
HEEL_INC = 90.0  # Inclination marking the heel (degrees)
HEEL_FALLBACK_INC = 45.0  # Most inclined station is used as heel above this (degrees)
HEEL_FALLBACK_FRACTION = 0.7  # Heel estimate as a fraction of bit depth without a survey
