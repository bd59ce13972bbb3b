"""
ormkit - uniform async driver layer over PostgreSQL and MongoDB.

- ormkit.core: drivers, query builders, errors, settings
"""

__version__ = "0.1.0"

from ormkit.core import *  # noqa
from ormkit.core import __all__ as _core_all

__all__ = ["__version__", *_core_all]
