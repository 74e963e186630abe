#!/usr/bin/env python3
"""
Validation tests for reaming and the tabular result views.
Run with: python3 -m pytest pywellcontrol/tests/ -v
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pywellcontrol.ream import run_ream_out, run_ream_in
from pywellcontrol.trip import TripInput, run_trip
from pywellcontrol.circulation import CirculationInput, PumpOperation, run_circulation
from pywellcontrol.tables import layer_table, trip_table, circulation_table, summary
from pywellcontrol.fluid import FluidIdentity
from pywellcontrol.geometry import AnnulusSection, DrillStringSection, WellGeometry, vertical
from pywellcontrol.constants import constants as c

GEOM = WellGeometry([AnnulusSection(0, 3000, 0.2159)], [DrillStringSection(0, 3000, 0.127, 0.1086)])
MUD = FluidIdentity(1200.0, name='Mud')
RHEO = FluidIdentity(1200.0, pv_cp=20.0, yp_pa=8.0, name='Mud')

# =============================================================================
# Ream out / ream in
# =============================================================================

def test_ream_out_formulas():
    res = run_ream_out(TripInput(1000, 950, 1250, RHEO), GEOM, vertical, pump_rate=0.5, control_md=1000)
    assert len(res) == len(res.trip.steps)
    for s in res.steps:
        assert s.apl > 0, f"APL {s.apl} at {s.bit_md}"
        assert abs(s.sabp_dynamic - max(0.0, s.sabp + s.swab - s.apl)) < 1e-9
        ecd = s.trip_step.esd_at_td + (s.sabp_dynamic + s.apl) / (c.GRAD * 1000)
        assert abs(s.ecd - ecd) < 1e-9
    assert res.steps[1].swab > 0

def test_ream_out_pumps_off_matches_trip():
    ream = run_ream_out(TripInput(1000, 950, 1250, MUD), GEOM, vertical, pump_rate=0.0, control_md=1000)
    trip = run_trip(TripInput(1000, 950, 1250, MUD), GEOM, vertical)
    for r, t in zip(ream.steps, trip.steps):
        assert r.apl == 0.0
        assert abs(r.sabp_dynamic - t.sabp_dynamic) < 1e-9
        assert abs(r.ecd - (t.esd_at_td + t.sabp_dynamic / (c.GRAD * 1000))) < 1e-6

def test_ream_in_formulas():
    res = run_ream_in(TripInput(900, 950, 1250, RHEO), GEOM, vertical, pump_rate=0.5, control_md=900)
    for s in res.steps:
        assert abs(s.required_choke - s.trip_step.sabp) < 1e-12
        assert abs(s.dynamic_choke - max(0.0, s.required_choke - s.apl - s.surge)) < 1e-9
        ecd = s.esd_at_control + (s.dynamic_choke + s.apl + s.surge) / (c.GRAD * 900)
        assert abs(s.ecd - ecd) < 1e-9
        assert abs(s.esd_at_control - 1200) < 1e-6
    assert res.steps[-1].surge > 0

def test_ream_in_below_target():
    res = run_ream_in(TripInput(900, 920, 1300, MUD), GEOM, vertical, pump_rate=0.2, control_md=900)
    assert all(s.below_target for s in res.steps), "A 100 kg/m3 shortfall needs choke at 0.2 m3/min"

def test_ream_direction_checked():
    try:
        run_ream_out(TripInput(900, 1000, 1200, MUD), GEOM, vertical, pump_rate=0.5, control_md=900)
        assert False, "Should have raised ValueError"
    except ValueError:
        pass
    try:
        run_ream_in(TripInput(1000, 900, 1200, MUD), GEOM, vertical, pump_rate=0.5, control_md=900)
        assert False, "Should have raised ValueError"
    except ValueError:
        pass
    try:
        run_ream_out(TripInput(1000, 900, 1200, MUD), GEOM, vertical, pump_rate=-1.0, control_md=900)
        assert False, "Should have raised ValueError"
    except ValueError:
        pass

# =============================================================================
# Tables
# =============================================================================

def test_trip_table():
    res = run_trip(TripInput(1000, 950, 1200, MUD), GEOM, vertical)
    df = trip_table(res)
    assert len(df) == len(res.steps)
    assert df.columns[0] == "Bit MD (m)"
    assert df.columns[5] == "Swab (kPa)"
    assert list(df["Bit MD (m)"]) == [s.bit_md for s in res.steps]

    back = run_trip(TripInput(950, 1000, 1200, MUD), GEOM, vertical)
    assert trip_table(back).columns[5] == "Surge (kPa)"

def test_layer_table():
    res = run_trip(TripInput(1000, 950, 1200, MUD), GEOM, vertical)
    rows = res.steps[-1].pocket_layers
    df = layer_table(rows)
    assert len(df) == len(rows)
    assert list(df["Side"]) == ['Pocket'] * len(rows)
    assert abs(df["Volume (m3)"].sum() - sum(r.volume for r in rows)) < 1e-12

def test_circulation_table():
    inp = CirculationInput(1000, 1000, 1230, pump_queue=(PumpOperation(MUD, 2.0),))
    res = run_circulation(inp, GEOM, vertical)
    df = circulation_table(res)
    assert len(df) == len(res.steps)
    assert df["Description"].iloc[0] == "Initial state at 1000m"
    assert df["Step"].iloc[-1] == len(res.steps) - 1

def test_summary():
    text = summary(run_trip(TripInput(1000, 950, 1200, MUD), GEOM, vertical))
    assert "Bit MD (m)" in text and "Swab (kPa)" in text
    inp = CirculationInput(1000, 1000, 1230, pump_queue=(PumpOperation(MUD, 1.0),))
    text = summary(run_circulation(inp, GEOM, vertical))
    assert "Description" in text
    try:
        summary("not a result")
        assert False, "Should have raised TypeError"
    except TypeError:
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
