"""Mooring documentation extraction pipeline.

Turns aquaculture mooring spreadsheets into position groups of typed
components: header-aware row normalization, deterministic field extraction,
position grouping with manufacturer inheritance, optional ambiguity
resolution and catalog matching.
"""

__version__ = "0.3.0"
