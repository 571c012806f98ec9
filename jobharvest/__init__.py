"""jobharvest - PowerToFly job discovery and extraction pipeline"""

__version__ = "0.1.0"
