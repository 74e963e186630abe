from .ream import *
