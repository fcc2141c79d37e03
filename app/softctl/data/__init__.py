"""Bundled data files for softctl."""
