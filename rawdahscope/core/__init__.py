"""Domain logic: processing, freshness and dashboard state."""
