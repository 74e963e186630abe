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
import threading
from typing import Callable, Iterable, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def bisect_max_feasible(f, lo, hi, limit, n_itr):
    """ Largest x in [lo, hi] with f(x) <= limit, for f increasing in x.
        Fixed iteration count, returns the feasible bracket end.
    """
    for _ in range(n_itr):
        mid = 0.5 * (lo + hi)
        if f(mid) <= limit:
            lo = mid
        else:
            hi = mid
    return lo


def weighted_mean(pairs: Iterable[Tuple[float, float]], default: float = 0.0) -> float:
    """ Weighted mean of (value, weight) pairs, default when total weight is ~zero """
    vals, wts = [], []
    for v, w in pairs:
        vals.append(v)
        wts.append(w)
    if not wts:
        return default
    wts = np.asarray(wts, dtype=float)
    tot = wts.sum()
    if tot <= 1e-12:
        return default
    return float(np.dot(np.asarray(vals, dtype=float), wts) / tot)


def notify(callback: Callable, payload) -> None:
    """ Fire-and-forget delivery to an optional progress callback.
        Callback errors are logged and never interrupt the caller.
    """
    if callback is None:
        return
    try:
        callback(payload)
    except Exception:
        logger.exception("Progress callback raised; continuing")


class CancellationToken:
    """ Cooperative cancellation flag checked once per outer simulation iteration.
        Safe to set from another thread.
    """
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()


def is_cancelled(token) -> bool:
    return token is not None and token.cancelled
