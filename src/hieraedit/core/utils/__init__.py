"""Shared utilities for hieraedit (I/O, merging, subprocess)."""
