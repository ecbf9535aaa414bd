"""Brand Pulse - e-commerce performance analytics engine.

Ingests daily per-brand spreadsheet rows, harmonizes them into one dataset
and derives pacing, efficiency, channel, platform and year-over-year views.
"""

__version__ = "0.1.0"
