# src/__init__.py — v1
"""tomatoscan — tomato leaf disease diagnosis pipeline.

Detection, classification and validated reporting with a perceptual-hash
result cache.
"""

from tomatoscan.version import __version__

__all__ = ["__version__"]
