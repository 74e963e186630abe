#!/usr/bin/env python3
"""
Validation tests for geometry module.
Run with: python3 -m pytest pywellcontrol/tests/ -v
Or standalone: python3 pywellcontrol/tests/test_geometry.py
"""

import sys
import os
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from pywellcontrol.geometry import AnnulusSection, DrillStringSection, WellGeometry, TvdSampler, vertical

HOLE = 0.2159
OD = 0.127
ID = 0.1086

def simple_well(depth=3000.0):
    return WellGeometry([AnnulusSection(0, depth, HOLE)], [DrillStringSection(0, depth, OD, ID)])

def tapered_well():
    ann = [AnnulusSection(0, 1000, 0.2244, 'Casing'), AnnulusSection(1000, 2500, 0.2159, 'Open hole')]
    dstr = [DrillStringSection(0, 2200, 0.127, 0.1086, 'DP'), DrillStringSection(2200, 2500, 0.1651, 0.0714, 'DC')]
    return WellGeometry(ann, dstr)

# =============================================================================
# Volumes
# =============================================================================

def test_string_volume_uniform():
    """String capacity is ID area x length"""
    g = simple_well()
    expected = np.pi / 4 * ID ** 2 * 1000
    v = g.volume_in_string(0, 1000)
    assert abs(v - expected) < 1e-9, f"String volume {v} != {expected}"

def test_annulus_volume_uniform():
    g = simple_well()
    expected = np.pi / 4 * (HOLE ** 2 - OD ** 2) * 500
    v = g.volume_in_annulus(500, 1000)
    assert abs(v - expected) < 1e-9, f"Annulus volume {v} != {expected}"

def test_od_volume_is_capacity_plus_steel():
    g = tapered_well()
    for top, bot in [(0, 100), (900, 1200), (2100, 2400)]:
        od = g.volume_of_string_od(top, bot)
        steel = sum(g.steel_displacement_area(m + 0.5) for m in np.arange(top, bot, 1.0))
        cap = g.volume_in_string(top, bot)
        assert abs(od - (cap + steel)) < 1e-6, f"OD volume mismatch over {top}-{bot}: {od} vs {cap + steel}"

def test_volume_additive():
    """Volumes over adjacent intervals add up"""
    g = tapered_well()
    whole = g.volume_in_annulus(200, 2400)
    parts = g.volume_in_annulus(200, 1000) + g.volume_in_annulus(1000, 2200) + g.volume_in_annulus(2200, 2400)
    assert abs(whole - parts) < 1e-9, f"Annulus volume not additive: {whole} vs {parts}"

def test_reversed_interval_zero():
    g = simple_well()
    assert g.volume_in_string(1000, 500) == 0.0
    assert g.volume_in_annulus(700, 700) == 0.0

def test_volume_beyond_deepest_section():
    """Depths past the deepest section continue with its areas"""
    g = simple_well(2000)
    expected = np.pi / 4 * (HOLE ** 2 - OD ** 2) * 100
    v = g.volume_in_annulus(2000, 2100)
    assert abs(v - expected) < 1e-9, f"Extrapolated annulus volume {v} != {expected}"

def test_section_lookups():
    g = tapered_well()
    assert g.hole_diameter(500) == 0.2244
    assert g.hole_diameter(1500) == 0.2159
    assert g.pipe_od(2300) == 0.1651
    assert g.pipe_id(100) == 0.1086
    # Beyond the table the nearest section is used
    assert g.hole_diameter(4000) == 0.2159
    assert g.pipe_od(4000) == 0.1651

def test_areas():
    g = tapered_well()
    ann = np.pi / 4 * (0.2244 ** 2 - 0.127 ** 2)
    assert abs(g.annulus_area(500) - ann) < 1e-12, f"Annulus area {g.annulus_area(500)} != {ann}"
    assert abs(g.string_area(2300) - np.pi / 4 * 0.0714 ** 2) < 1e-12
    steel = np.pi / 4 * (0.1651 ** 2 - 0.0714 ** 2)
    assert abs(g.steel_displacement_area(2300) - steel) < 1e-12

# =============================================================================
# Inverses
# =============================================================================

def test_string_length_roundtrip():
    """Length for a volume inverts the volume integral"""
    g = tapered_well()
    for start, length in [(0, 500), (100, 1500), (2000, 400)]:
        vol = g.volume_in_string(start, start + length)
        back = g.length_for_string_volume(start, vol)
        assert abs(back - length) < 1e-6, f"String roundtrip from {start}: {length} -> {vol} -> {back}"

def test_annulus_length_roundtrip():
    g = tapered_well()
    for start, length in [(0, 1200), (800, 300), (2300, 150)]:
        vol = g.volume_in_annulus(start, start + length)
        back = g.length_for_annulus_volume(start, vol)
        assert abs(back - length) < 1e-6, f"Annulus roundtrip from {start}: {length} -> {vol} -> {back}"

def test_length_zero_volume():
    g = simple_well()
    assert g.length_for_string_volume(0, 0.0) == 0.0

# =============================================================================
# Validation
# =============================================================================

def test_invalid_sections():
    for bad in [lambda: AnnulusSection(100, 50, 0.2), lambda: AnnulusSection(0, 100, 0.0),
                lambda: DrillStringSection(0, 100, 0.1, 0.12), lambda: DrillStringSection(-1, 100, 0.127, 0.1)]:
        try:
            bad()
            assert False, "Should have raised ValueError"
        except ValueError:
            pass

def test_empty_geometry():
    try:
        WellGeometry([], [DrillStringSection(0, 100, 0.127, 0.1)])
        assert False, "Should have raised ValueError"
    except ValueError:
        pass

# =============================================================================
# TVD sampler
# =============================================================================

def test_tvd_interpolation():
    s = TvdSampler([0, 1000, 2000], [0, 900, 1700])
    assert abs(s(500) - 450) < 1e-9, f"TVD at 500 = {s(500)}"
    assert abs(s(1500) - 1300) < 1e-9, f"TVD at 1500 = {s(1500)}"

def test_tvd_clamped():
    """Depths outside the survey take the end station values"""
    s = TvdSampler([0, 1000, 2000], [0, 900, 1700])
    assert s(3000) == 1700
    assert s(-10) == 0

def test_tvd_unsorted_duplicates():
    """Stations are sorted, duplicate MDs dropped and TVD kept non-decreasing"""
    s = TvdSampler([1000, 0, 1000, 2000, 1500], [900, 0, 950, 1700, 800])
    assert list(s.md) == [0, 1000, 1500, 2000]
    assert np.all(np.diff(s.tvd) >= 0), f"TVD not monotonic: {s.tvd}"

def test_vertical_sampler():
    assert vertical(1234.5) == 1234.5
    assert vertical(-3) == 0.0


if __name__ == '__main__':
    tests = [v for k, v in globals().items() if k.startswith('test_')]
    passed = 0
    failed = 0
    for test in tests:
        try:
            test()
            passed += 1
            print(f"  PASS: {test.__name__}")
        except Exception as e:
            failed += 1
            print(f"  FAIL: {test.__name__}: {e}")
    print(f"Results: {passed} passed, {failed} failed out of {passed + failed}")
    sys.exit(1 if failed > 0 else 0)
