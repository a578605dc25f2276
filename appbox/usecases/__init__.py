"""Use-case layer for the launcher pipeline stages.

Each module coordinates domain objects and ports without performing transport
I/O directly, preserving MVVM + Hexagonal boundaries.
"""
