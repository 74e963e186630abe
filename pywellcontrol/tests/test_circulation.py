#!/usr/bin/env python3
"""
Validation tests for circulation at a fixed bit depth.
Run with: python3 -m pytest pywellcontrol/tests/ -v
"""

import sys
import os
import math

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pywellcontrol.circulation import CirculationInput, CirculationProgress, PumpOperation, run_circulation
from pywellcontrol.trip import TripInput, run_trip
from pywellcontrol.estimators import apl_simplified
from pywellcontrol.fluid import FluidIdentity
from pywellcontrol.hydrostatics import LayerRow
from pywellcontrol.geometry import AnnulusSection, DrillStringSection, WellGeometry, vertical
from pywellcontrol.shared_fns import CancellationToken
from pywellcontrol.classes import phase
from pywellcontrol.constants import constants as c

GEOM = WellGeometry([AnnulusSection(0, 3000, 0.2159)], [DrillStringSection(0, 3000, 0.127, 0.1086)])
MUD = FluidIdentity(1200.0, name='Mud')
KILL = FluidIdentity(1500.0, name='Kill')

def displacement(target=1200.0, volume=12.0, **kw):
    """ Heavy pill displacement with friction switched off """
    return CirculationInput(1000, 1000, target, pump_queue=(PumpOperation(KILL, volume),),
                            max_pump_rate=0.0, min_pump_rate=0.0, **kw)

# =============================================================================
# Displacement bookkeeping
# =============================================================================

def test_kill_displacement():
    res = run_circulation(displacement(), GEOM, vertical)
    assert len(res.steps) == 25, f"Expected 25 steps (initial + 24), got {len(res.steps)}"
    assert res.steps[0].description == "Initial state at 1000m"
    assert res.steps[-1].description.startswith("End: Kill"), f"Last description {res.steps[-1].description}"
    assert abs(res.returned_volume - 12.0) < 1e-9, f"Returns {res.returned_volume}"
    assert all(p.density == 1200 for p in res.surface_returns), "Only original annulus fluid returns"
    assert len(res.string_layers) == 1 and res.string_layers[0].density == 1500

    # Kill past the bit: 12 m3 less the string capacity, spread over the annulus
    in_ann = 12.0 - GEOM.volume_in_string(0, 1000)
    h = GEOM.length_for_annulus_volume(0, in_ann)
    expected = (1200 * (1000 - h) + 1500 * h) / 1000
    assert abs(res.esd_at_control - expected) < 0.01, f"ESD {res.esd_at_control} != {expected}"

def test_esd_rises_monotonically():
    res = run_circulation(displacement(), GEOM, vertical)
    esds = [s.esd_at_control for s in res.steps]
    assert all(b >= a - 1e-9 for a, b in zip(esds, esds[1:])), f"ESD fell: {esds}"
    assert abs(esds[0] - 1200) < 1e-6

def test_volume_units():
    res = run_circulation(displacement(), GEOM, vertical)
    last = res.steps[-1]
    assert abs(last.volume_pumped_m3 - 12.0) < 1e-9
    assert abs(last.volume_pumped_bbl - 12.0 * c.M3_TO_BBL) < 1e-6
    assert abs(last.strokes - 1200.0) < 1e-6

def test_sabp_bookkeeping():
    res = run_circulation(displacement(target=1250.0), GEOM, vertical)
    first, last = res.steps[0], res.steps[-1]
    assert abs(first.required_sabp - 490.5) < 1e-6
    assert last.required_sabp < first.required_sabp
    assert abs(last.cumulative_delta_sabp - (last.required_sabp - first.required_sabp)) < 1e-9
    assert abs(sum(s.delta_sabp for s in res.steps) - last.cumulative_delta_sabp) < 1e-9
    assert all(s.apl == 0.0 and s.pump_rate == 0.0 for s in res.steps[1:])

def test_open_hole_below_bit_kept():
    inp = CirculationInput(900, 1000, 1200, pump_queue=(PumpOperation(MUD, 1.0),),
                           pocket_layers=(LayerRow.seed(0, 1000, MUD),))
    res = run_circulation(inp, GEOM, vertical)
    assert abs(res.steps[0].esd_at_control - 1200) < 1e-6
    assert res.pocket_layers[-1].top_md == 900 and res.pocket_layers[-1].bottom_md == 1000
    assert res.pocket_layers[-1].side == 'Pocket'

def test_control_below_bit_fills_open_hole():
    """Open hole between the bit and a deeper control point holds active fluid"""
    inp = CirculationInput(1000, 1500, 1200, pump_queue=(PumpOperation(MUD, 1.0),),
                           active_fluid=MUD, max_pump_rate=0.0, min_pump_rate=0.0)
    res = run_circulation(inp, GEOM, vertical)
    first = res.steps[0]
    assert abs(first.esd_at_control - 1200) < 1e-6, f"ESD {first.esd_at_control}"
    assert first.required_sabp < 1e-6, f"SABP {first.required_sabp}"
    hole = [r for r in res.pocket_layers if r.side == 'Pocket']
    assert [(r.top_md, r.bottom_md) for r in hole] == [(1000, 1500)]

def test_open_hole_filled_below_given_layers():
    inp = CirculationInput(900, 1500, 1200, pump_queue=(PumpOperation(MUD, 1.0),),
                           pocket_layers=(LayerRow.seed(0, 1000, MUD),), active_fluid=MUD,
                           max_pump_rate=0.0, min_pump_rate=0.0)
    res = run_circulation(inp, GEOM, vertical)
    hole = [(r.top_md, r.bottom_md) for r in res.pocket_layers if r.side == 'Pocket']
    assert hole == [(900, 1000), (1000, 1500)], f"Open hole rows {hole}"
    assert abs(res.esd_at_control - 1200) < 1e-6

# =============================================================================
# Pump rate and friction
# =============================================================================

def test_pump_rate_reduced_for_apl():
    """Friction at full rate exceeds the static back pressure, so the rate is cut back"""
    inp = CirculationInput(1000, 1000, 1230, pump_queue=(PumpOperation(MUD, 1.0),))
    res = run_circulation(inp, GEOM, vertical)
    static = 30 * c.GRAD * 1000
    full = apl_simplified(1200, 1000, 1.0, 0.2159, 0.127)
    expected = math.sqrt(static / full)
    for s in res.steps[1:]:
        assert inp.min_pump_rate < s.pump_rate < inp.max_pump_rate
        assert abs(s.pump_rate - expected) < 1e-3, f"Rate {s.pump_rate} != {expected}"
        assert s.apl <= s.static_sabp + 1e-9
        assert abs(s.required_sabp - (s.static_sabp - s.apl)) < 1e-9
    assert res.diagnostics == ()

def test_full_rate_when_friction_fits():
    inp = CirculationInput(1000, 1000, 1300, pump_queue=(PumpOperation(MUD, 1.0),))
    res = run_circulation(inp, GEOM, vertical)
    s = res.steps[-1]
    assert s.pump_rate == 1.0
    assert abs(s.required_sabp - (s.static_sabp - s.apl)) < 1e-9

def test_pump_rate_floor():
    inp = CirculationInput(1000, 1000, 1200, pump_queue=(PumpOperation(MUD, 1.0),))
    res = run_circulation(inp, GEOM, vertical)
    for s in res.steps[1:]:
        assert s.pump_rate == inp.min_pump_rate
        assert s.required_sabp == 0.0
    codes = [d.code for d in res.diagnostics]
    assert codes == ['PUMP_RATE_FLOOR'], f"Diagnostics {codes}"

def test_failing_apl_is_zero():
    class Broken:
        def estimate(self, *args, **kwargs):
            raise ZeroDivisionError("bad hole")
    inp = CirculationInput(1000, 1000, 1230, pump_queue=(PumpOperation(MUD, 1.0),))
    res = run_circulation(inp, GEOM, vertical, apl=Broken())
    assert all(s.apl == 0.0 for s in res.steps)
    assert res.steps[-1].pump_rate == 1.0
    assert [d.code for d in res.diagnostics] == ['APL_FAILED']

# =============================================================================
# Chaining, progress and cancellation
# =============================================================================

def test_chain_into_trip():
    """A heavy string after circulation U-tubes at the start of the trip"""
    circ = run_circulation(displacement(), GEOM, vertical)
    trip = run_trip(TripInput(1000, 950, 1200, MUD, initial_string_layers=circ.string_layers,
                              initial_annulus_layers=circ.pocket_layers,
                              initial_pocket_layers=circ.pocket_layers), GEOM, vertical)
    assert trip.steps[0].bit_md == 1000
    assert trip.steps[0].float_state == "OPEN (Initial Slug)"
    assert trip.steps[0].slug_contribution > 1.0
    assert trip.steps[-1].bit_md == 950

def test_empty_queue():
    res = run_circulation(CirculationInput(1000, 1000, 1200), GEOM, vertical)
    assert len(res.steps) == 0
    assert res.returned_volume == 0.0

def test_progress():
    seen = []
    run_circulation(displacement(), GEOM, vertical, on_progress=seen.append)
    assert seen[0].phase == phase.INITIALIZING
    assert seen[-1].phase == phase.COMPLETE
    assert abs(seen[-1].fraction - 1.0) < 1e-9
    assert any(p.phase == phase.CIRCULATING for p in seen)
    assert CirculationProgress(phase.CIRCULATING, 3.0, 12.0, "").fraction == 0.25

def test_cancel_before_start():
    token = CancellationToken()
    token.cancel()
    res = run_circulation(displacement(), GEOM, vertical, cancel_token=token)
    assert res.cancelled
    assert len(res.steps) == 1

def test_invalid_inputs():
    for bad in [CirculationInput(0, 1000, 1200, pump_queue=(PumpOperation(MUD, 1.0),)),
                CirculationInput(1000, 1000, 1200, pump_queue=(PumpOperation(MUD, 1.0),), min_pump_rate=2.0),
                CirculationInput(1000, 1000, 1200, pump_queue=(PumpOperation(MUD, -1.0),))]:
        try:
            run_circulation(bad, GEOM, vertical)
            assert False, "Should have raised ValueError"
        except ValueError:
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
