"""Report rendering for collected samples."""
