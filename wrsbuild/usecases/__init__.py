"""Use-case layer for the repair-source build.

Each module coordinates domain objects and ports without shelling out to
servicing tools directly, preserving the hexagonal boundaries.
"""
