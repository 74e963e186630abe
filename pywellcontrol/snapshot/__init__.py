from .snapshot import *
