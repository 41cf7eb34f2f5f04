"""Terminal browser for kbase."""
