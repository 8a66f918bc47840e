"""One-shot lookups outside the event timelines."""
