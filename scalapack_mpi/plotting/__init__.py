from .plotting import *
