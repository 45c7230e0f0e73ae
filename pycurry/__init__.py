"""
pycurry is a package for reading Neuroscan Curry recordings (Curry 6 to 9)
in Python, together with their parameter, label and event companion files
"""
import importlib.metadata

# this need to be at the begining because some sub module will need the version
__version__ = importlib.metadata.version("pycurry")

import logging

logging_handler = logging.StreamHandler()

from pycurry.core import *
from pycurry.io import *
