"""something_bg: keep background commands running and run scheduled ones on time."""

__version__ = "0.3.0"
