"""
pywellcontrol
===================================

-------------------------------------------------
A collection of Wellbore Fluid Control Utilities
-------------------------------------------------

Bookkeeping of the fluids in a drilling well, drill string and annulus, as pipe is
tripped or fluid is pumped, and the surface back pressure needed to hold a target
equivalent density while doing so.

Functions are grouped into modules, requiring separate imports

Includes;

- Depth indexed fluid stacks for the string and annulus, and the open hole below the bit
- Float valve U-tube equalization, calculated or calibrated to an observed pit gain
- Trip out and trip in simulation with backfill, pit gain and swab/surge tracking
- Circulation of a pump schedule at fixed bit depth with APL limited pump rates
- Ream out and ream in (tripping with the pumps on)
- Kill mud density for a slugged trip out of a horizontal well
- Hydrostatic pressure, ESD and required back pressure calculations
- Section table well geometry and survey TVD interpolation
- Swab/surge (Burkhardt clinging constant, Bingham) and APL (power law, Bingham, empirical) estimators
- Tabular (pandas / tabulate) views of simulation results

"""

submodules = [
    'circulation',
    'classes',
    'config',
    'constants',
    'errors',
    'estimators',
    'floatvalve',
    'fluid',
    'geometry',
    'hydrostatics',
    'optimizer',
    'ream',
    'shared_fns',
    'snapshot',
    'stack',
    'tables',
    'trip',
    'validate'
]

__all__ = submodules

import importlib

def __dir__():
    return __all__


def __getattr__(name):
    if name in submodules:
        return importlib.import_module(f'pywellcontrol.{name}')
    else:
        try:
            return globals()[name]
        except KeyError:
            raise AttributeError(
                f"Module 'pywellcontrol' has no attribute '{name}'"
            )
