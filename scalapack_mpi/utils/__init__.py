from . import config
from .blockcyclic import *
