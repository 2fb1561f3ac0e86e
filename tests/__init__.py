"""
CMDB Test Suite.

This package contains:
- unit/: Unit tests (one module at a time, temporary SQLite files)
- integration/: Integration tests (CMDB handle, cascade, threads, demo entry point)
"""
