# labconf/ui/__init__.py
from . import colors
