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
from typing import Optional


class WellControlError(Exception):
    """ Base class for errors raised by pywellcontrol """


class ContractViolation(WellControlError, AssertionError):
    """ A conduit-specific operation was called on the wrong conduit, or a
        collaborator broke its contract. Indicates a caller bug, never a data condition.
    """


@dataclass(frozen=True)
class Diagnostic:
    """ Degraded-result notice attached to a simulation result.

        code: Short machine readable tag, e.g. 'EQ_CAPPED', 'PUMP_RATE_FLOOR'
        message: Human readable description
        md: Bit depth (m) at which the condition was observed, if relevant
    """
    code: str
    message: str
    md: Optional[float] = None


class MissingRheology(WellControlError):
    """ No fluid in the interval carries PV/YP or dial readings """
