from .hydrostatics import *
