from .floatvalve import *
