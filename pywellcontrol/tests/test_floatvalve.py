#!/usr/bin/env python3
"""
Validation tests for float valve equalization.
Run with: python3 -m pytest pywellcontrol/tests/ -v
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pywellcontrol.floatvalve import FloatValveEqualizer
from pywellcontrol.stack import Stack
from pywellcontrol.fluid import FluidIdentity
from pywellcontrol.geometry import AnnulusSection, DrillStringSection, WellGeometry, vertical
from pywellcontrol.classes import eq_result, float_state
from pywellcontrol.config import SimulationSettings
from pywellcontrol.errors import ContractViolation

GEOM = WellGeometry([AnnulusSection(0, 3000, 0.2159)], [DrillStringSection(0, 3000, 0.127, 0.1086)])
MUD = FluidIdentity(1200.0)
SLUG = FluidIdentity(1500.0, name='Slug')
BIT = 1000.0

def stacks(slug_length=0.0):
    s = Stack('STRING', GEOM, vertical)
    s.seed_uniform(MUD, 0, BIT)
    if slug_length > 0:
        s.paint_interval(0, slug_length, SLUG)
    a = Stack('ANNULUS', GEOM, vertical)
    a.seed_uniform(MUD, 0, BIT)
    return s, a

def test_balanced_is_closed():
    """Equal columns keep the float closed by the crack pressure"""
    s, a = stacks()
    d = FloatValveEqualizer(s, a).state(BIT, 0.0)
    assert d.state == float_state.CLOSED
    assert abs(d.margin - 5.0) < 1e-9, f"Margin {d.margin} != crack pressure"

def test_slug_opens_float():
    s, a = stacks(100)
    d = FloatValveEqualizer(s, a).state(BIT, 0.0)
    assert d.state == float_state.OPEN, f"Heavy slug should open the float, margin {d.margin}"

def test_sabp_holds_float_closed():
    s, a = stacks(100)
    d = FloatValveEqualizer(s, a).state(BIT, 400.0)
    assert d.closed, f"400 kPa SABP should hold a 294 kPa slug, margin {d.margin}"

def test_state_is_deterministic():
    """Float state depends only on the stacks"""
    s, a = stacks(60)
    eq = FloatValveEqualizer(s, a)
    assert eq.state(BIT, 10.0) == eq.state(BIT, 10.0)

def test_calc_equalization_converges():
    s, a = stacks(100)
    eq = FloatValveEqualizer(s, a)
    res = eq.equalize(BIT, 0.0, 'CALC')
    assert res.reason == eq_result.CONVERGED, f"Reason {res.reason}"
    assert res.decision.closed
    assert res.iterations > 0 and res.drained_volume > 0
    # Slug is 294 kPa overbalanced; air must replace roughly 25 m of string mud
    expected = 0.00981 * 300 * 100
    air_len = res.drained_volume / GEOM.volume_in_string(0, 1)
    assert abs(air_len * 0.00981 * (1200 - 1.2) - expected) < 10.0, f"Air column {air_len} m"
    assert abs(res.pit_gain - res.drained_volume) < 1e-6, "Annulus returns what the string drains"

def test_crack_pressure_is_the_float_criterion():
    """state() and equalize() close the float against the same crack pressure"""
    s, a = stacks(20)
    eq = FloatValveEqualizer(s, a)
    assert not eq.state(BIT, 0.0).closed, "59 kPa slug opens a 5 kPa float"
    res = eq.equalize(BIT, 0.0, crack_pressure=200.0)
    assert res.reason == eq_result.CONVERGED and res.iterations == 0
    assert res.decision.closed, f"Decision margin {res.decision.margin} should use the 200 kPa crack pressure"
    assert abs(res.decision.margin - (200.0 - 0.00981 * 300 * 20)) < 1e-6

    st = SimulationSettings(crack_pressure_kpa=200.0)
    d = FloatValveEqualizer(s, a, st).state(BIT, 0.0)
    assert d.closed and abs(d.margin - (200.0 - 0.00981 * 300 * 20)) < 1e-6

def test_balanced_equalization_does_nothing():
    s, a = stacks()
    res = FloatValveEqualizer(s, a).equalize(BIT, 0.0)
    assert res.iterations == 0 and res.drained_volume == 0
    assert res.reason == eq_result.CONVERGED

def test_observed_drains_exact_volume():
    """Observed mode drains the requested pit gain exactly"""
    s, a = stacks()
    before = s.total_volume()
    res = FloatValveEqualizer(s, a).equalize(BIT, 0.0, 'OBS', observed_volume=0.053)
    assert res.reason == eq_result.VOLUME_DRAINED
    assert abs(res.drained_volume - 0.053) < 1e-9, f"Drained {res.drained_volume}"
    assert res.iterations == 6
    # Drained string fluid is replaced by air, so string volume is unchanged
    assert abs(s.total_volume() - before) < 1e-9

def test_iteration_cap():
    s, a = stacks(100)
    res = FloatValveEqualizer(s, a).equalize(BIT, 0.0, max_iterations=3)
    assert res.reason == eq_result.CAPPED
    assert res.capped
    assert res.iterations == 3
    assert abs(res.drained_volume - 0.03) < 1e-9

def test_pulse_volume_setting():
    s, a = stacks()
    st = SimulationSettings(pulse_volume=0.02)
    res = FloatValveEqualizer(s, a, st).equalize(BIT, 0.0, 'OBS', observed_volume=0.1)
    assert res.iterations == 5

def test_progress_callback():
    s, a = stacks(100)
    calls = []
    st = SimulationSettings(progress_iterations=5)
    FloatValveEqualizer(s, a, st).equalize(BIT, 0.0, on_iteration=lambda n, v: calls.append(n))
    assert calls and all(n % 5 == 0 for n in calls), f"Callback iterations {calls}"

def test_observed_needs_volume():
    s, a = stacks()
    try:
        FloatValveEqualizer(s, a).equalize(BIT, 0.0, 'OBS')
        assert False, "Should have raised ValueError"
    except ValueError:
        pass

def test_bad_mode():
    s, a = stacks()
    try:
        FloatValveEqualizer(s, a).equalize(BIT, 0.0, 'GUESS')
        assert False, "Should have raised ValueError"
    except ValueError:
        pass

def test_swapped_stacks():
    s, a = stacks()
    try:
        FloatValveEqualizer(a, s)
        assert False, "Should have raised ContractViolation"
    except ContractViolation:
        pass


if __name__ == '__main__':
    tests = [v for k, v in globals().items() if k.startswith('test_')]
    failed = 0
    for test in tests:
        try:
            test()
            print(f"  PASS: {test.__name__}")
        except Exception as e:
            failed += 1
            print(f"  FAIL: {test.__name__}: {e}")
    sys.exit(1 if failed > 0 else 0)
