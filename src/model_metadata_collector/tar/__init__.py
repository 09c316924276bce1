"""Layer archive scanning."""
