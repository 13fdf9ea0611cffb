"""Build, package and install the prebuilt EDR native addon for every supported platform."""

__version__ = "0.1.0"
