"""Search, merge and view-mode logic."""
