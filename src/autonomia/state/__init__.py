"""State layer.

The reducer is the single source of truth for how a cycle's history maps
to its derived mileage and fuel. The store holds records between calls
and persists them through a backend.
"""
