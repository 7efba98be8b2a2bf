"""Live, searchable view over the aggregated Reddit feed."""

__version__ = "0.1.0"
