"""Lead discovery pipeline: from a business goal to analyzed prospect websites."""

__version__ = "1.0.0"
