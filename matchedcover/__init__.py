"""MatchedCover — multi-carrier insurance quote aggregation.

Fans one normalized quote request out to every eligible carrier API, falls
back to deterministic premium estimates when a carrier cannot answer, caches
live results, and exposes binding and claims submission for carriers that
support them.
"""

__version__ = "0.1.0"
