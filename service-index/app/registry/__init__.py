"""Index registry components.

Includes the ``IndexManager`` which owns every open index handle, and the
aggregation helpers used to merge results of queries across all indices.
"""
