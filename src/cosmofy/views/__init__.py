"""Dashboard views: presets, per-view state and navigation cursors."""
