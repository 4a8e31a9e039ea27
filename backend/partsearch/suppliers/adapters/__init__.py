"""Supplier-specific adapter implementations.

Each adapter module implements a class that inherits from BaseAdapter and
speaks its upstream's protocol.
"""

# REST adapters
from .impex import ImpexAdapter
from .apec import ApecAdapter

# SOAP adapters
from .emex import EmexAdapter
from .rotinger import RotingerAdapter

# Portal adapters
from .stimo import StimoAdapter
from .thunder import ThunderAdapter

__all__ = [
    "ImpexAdapter",
    "ApecAdapter",
    "EmexAdapter",
    "RotingerAdapter",
    "StimoAdapter",
    "ThunderAdapter",
]
