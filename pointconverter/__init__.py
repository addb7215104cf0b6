"""Point attribute converter and its call-accounting verification harness."""

__version__ = "0.1.0"
