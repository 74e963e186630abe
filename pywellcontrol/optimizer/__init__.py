from .optimizer import *
