"""
Record Store - In-memory queryable object store

An ordered operation engine over a pluggable storage backend, with
composable queries, path-addressed patches and hierarchical tree views.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
