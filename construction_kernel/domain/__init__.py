"""
Pure domain core for the construction kernel.

Nothing in this package performs I/O. Services and selectors feed it
snapshots and persist what it returns.
"""
