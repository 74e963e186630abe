#!/usr/bin/env python3
"""
Validation tests for the kill mud optimizer.
Run with: python3 -m pytest pywellcontrol/tests/ -v
"""

import sys
import os
import math

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pywellcontrol.optimizer import KillMudInput, find_heel_depth, find_inclination_depth, optimize_kill_mud
from pywellcontrol.geometry import AnnulusSection, DrillStringSection, WellGeometry, vertical

GEOM = WellGeometry([AnnulusSection(0, 3000, 0.2159)], [DrillStringSection(0, 3000, 0.127, 0.1086)])
STEEL = GEOM.volume_of_string_od(0, 3000) - GEOM.volume_in_string(0, 3000)

def kill_input(**kw):
    args = dict(target_esd=1200.0, surface_slug_volume=2.0, surface_slug_density=1500.0, base_mud_density=1200.0,
                start_bit_md=3000.0, control_md=3000.0, crack_pressure_kpa=0.0, heel_md=2000.0)
    args.update(kw)
    return KillMudInput(**args)

# =============================================================================
# Kill mud density
# =============================================================================

def test_kill_mud_balances_surface_slug():
    """Kill mud makes up for the slug column left in the annulus"""
    res = optimize_kill_mud(kill_input(), GEOM, vertical)
    assert abs(res.slug_drop_calculated - 0.5) < 1e-9, f"Slug drop {res.slug_drop_calculated}"
    assert abs(res.steel_displacement - STEEL) < 1e-9
    assert abs(res.kill_mud_volume - (STEEL + 0.5)) < 1e-9
    cap = GEOM.annulus_area(0)
    kb, ls = res.kill_mud_volume / cap, 2.0 / cap
    expected = 1200 - 300 * ls / kb
    assert abs(res.kill_mud_density - expected) < 1e-4, f"Kill mud {res.kill_mud_density} != {expected}"
    assert abs(res.esd_at_control - 1200) < 0.01
    assert res.valid and res.diagnostics == ()
    assert res.annulus_layers[0].top == 0 and res.annulus_layers[-1].bottom == 3000
    assert res.annulus_layers[0].density == res.kill_mud_density

def test_layer_heights_cover_control_depth():
    res = optimize_kill_mud(kill_input(), GEOM, vertical)
    total = (res.kill_mud_height + res.surface_slug_height + res.active_mud_height
             + res.second_slug_height + res.original_mud_height)
    assert abs(total - 3000) < 1e-6, f"Heights sum to {total}"
    assert abs(res.original_mud_height - 1000) < 1e-9
    assert res.heel_md == 2000 and res.control_tvd == 3000

def test_second_slug_density_default():
    """Second slug defaults to 2 x target - base plus the crack pressure equivalent at the heel"""
    res = optimize_kill_mud(kill_input(target_esd=1250.0, crack_pressure_kpa=50.0), GEOM, vertical)
    crack_rho = 50.0 / 2000 / 0.00981
    assert abs(res.second_slug_density - (1300 + crack_rho)) < 1e-9, f"Second slug {res.second_slug_density}"
    assert res.second_slug_density_was_calculated
    assert abs(res.effective_esd - (1250 + crack_rho)) < 1e-9

    res = optimize_kill_mud(kill_input(target_esd=1250.0, crack_pressure_kpa=50.0, second_slug_density=1400.0),
                            GEOM, vertical)
    assert res.second_slug_density == 1400.0
    assert not res.second_slug_density_was_calculated
    assert abs(res.second_slug_density_calculated - (1300 + crack_rho)) < 1e-9

def test_observed_slug_drop_overrides_estimate():
    res = optimize_kill_mud(kill_input(observed_slug_drop=1.0), GEOM, vertical)
    assert res.slug_drop_volume == 1.0
    assert abs(res.slug_drop_calculated - 0.5) < 1e-9
    assert abs(res.kill_mud_volume - (STEEL + 1.0)) < 1e-9
    assert abs(res.esd_at_control - 1200) < 0.01

def test_unreachable_target_is_clamped():
    res = optimize_kill_mud(kill_input(target_esd=2000.0, surface_slug_volume=0.0, second_slug_density=1200.0),
                            GEOM, vertical)
    assert res.kill_mud_density == 2500.0
    assert not res.valid
    assert [d.code for d in res.diagnostics] == ['KILL_DENSITY_CLAMPED']

def test_overcompensating_slugs_floor_density():
    res = optimize_kill_mud(kill_input(surface_slug_volume=10.0, surface_slug_density=2200.0,
                                       second_slug_density=1200.0), GEOM, vertical)
    assert res.kill_mud_density == 800.0
    assert res.esd_at_control > 1200
    assert not res.valid
    assert 'KILL_DENSITY_LOW' in [d.code for d in res.diagnostics]

# =============================================================================
# Heel
# =============================================================================

MD = [0, 1000, 1500, 2000, 2500]
TVD = [0, 990, 1400, 1600, 1600]

def test_heel_from_survey():
    assert find_heel_depth(MD, [0, 10, 60, 91, 90], TVD) == (2000.0, 1600.0)
    assert find_inclination_depth(MD, [0, 10, 60, 91, 90], TVD, 60) == (1500.0, 1400.0)

def test_heel_fallbacks():
    assert find_heel_depth(MD, [0, 10, 70, 60, 50], TVD) == (1500.0, 1400.0)
    assert find_heel_depth(MD, [0, 10, 20, 30, 30], TVD) is None
    assert find_inclination_depth(MD, [0, 10, 20, 30, 30], TVD, 60) is None

def test_survey_heel_used():
    survey = ([0, 1000, 2000, 3000], [0, 10, 90, 90], [0, 1000, 2000, 3000])
    res = optimize_kill_mud(kill_input(heel_md=None), GEOM, vertical, survey=survey)
    assert res.heel_md == 2000.0 and res.diagnostics == ()

def test_heel_estimated_without_survey():
    res = optimize_kill_mud(kill_input(heel_md=None), GEOM, vertical)
    assert math.isclose(res.heel_md, 2100.0)
    assert [d.code for d in res.diagnostics] == ['HEEL_ESTIMATED']

def test_invalid_inputs():
    for bad in [kill_input(target_esd=0.0), kill_input(surface_slug_volume=-1.0), kill_input(heel_md=-5.0)]:
        try:
            optimize_kill_mud(bad, GEOM, vertical)
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
