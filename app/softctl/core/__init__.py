"""Core orchestration for softctl.

Configuration, paths, cancellation, matching, process control, the
progress channel, the package store and the inventory.
"""
