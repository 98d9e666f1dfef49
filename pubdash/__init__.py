"""pubdash package initializer.

This package contains the data pipeline behind the publications
dashboard.  Modules include the CSV source adapter, the JSON service,
the client fetch wrapper, aggregation, timeline and plotting helpers.
See individual module docstrings for details.
"""
