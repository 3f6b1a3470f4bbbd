"""querycache: second-level cache for database query results.

Statements are resolved to a cache policy, results are stored in Redis with
the tables they depend on, and mutating statements invalidate them.
"""

__version__ = "0.1.0"
