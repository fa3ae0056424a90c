"""
stocksheet — Stock screening spreadsheet builder.

Lays out annual and quarterly financial tables for a ticker, fills them with
reported values or forecast formulas, links quarterly figures to annual
totals and adds a P/E-scenario valuation grid.
"""

__version__ = "0.1.0"
