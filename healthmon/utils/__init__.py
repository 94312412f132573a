"""Shared data structures, status values and logging."""
