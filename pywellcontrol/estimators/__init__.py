from .estimators import *
