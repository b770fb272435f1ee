"""depwatch: decide which build handler owns a changed source file."""

__version__ = "0.3.0"
