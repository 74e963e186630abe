from .circulation import *
