from .trip import *
