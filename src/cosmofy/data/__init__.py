"""Source adapters, the location cache and the event aggregator."""
