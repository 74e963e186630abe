from .fluid import *
