"""
BestChange bundle client.

This package provides tools to:
- Download the BestChange info.zip bundle with a bounded timeout
- Cache it on disk with a freshness window and atomic replacement
- Parse currencies, exchangers, rates and bundle metadata into records
- Query the parsed data from Python or from the command line
"""

__app_name__ = "bestchange"
