from .stack import *
