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

from enum import Enum

class side(Enum):  # Conduit owning a stack
    STRING = 0
    ANNULUS = 1

class stack_end(Enum):  # End of a volume-indexed parcel stack
    TOP = 0
    BOTTOM = 1

class float_state(Enum):  # Float valve state
    CLOSED = 0
    OPEN = 1

class eq_mode(Enum):  # Equalization mode
    CALC = 0  # Drain until pressures balance
    OBS = 1  # Drain an observed pit gain volume

class eq_result(Enum):  # Equalization termination reason
    CONVERGED = 0  # Float closed
    VOLUME_DRAINED = 1  # Observed volume fully drained
    EXHAUSTED = 2  # Nothing left to drain in the string
    CAPPED = 3  # Iteration limit reached

class trip_dir(Enum):  # Direction of pipe movement
    OUT = 0  # Pulling out, bit moves shallower
    IN = 1  # Running in, bit moves deeper

class phase(Enum):  # Progress reporting phase
    INITIALIZING = 0
    INITIAL_EQUALIZATION = 1
    TRIPPING = 2
    STEP_EQUALIZATION = 3
    CIRCULATING = 4
    COMPLETE = 5
    CANCELLED = 6

class apl_method(Enum):  # Annular pressure loss model
    AUTO = 0  # Power law if dials, Bingham if PV/YP, else empirical
    PLAW = 1
    BING = 2
    EMP = 3

class_dic = {
    "side": side,
    "stackend": stack_end,
    "floatstate": float_state,
    "eqmode": eq_mode,
    "eqresult": eq_result,
    "tripdir": trip_dir,
    "phase": phase,
    "aplmethod": apl_method,
}
