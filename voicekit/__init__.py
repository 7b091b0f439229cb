"""Voice assistant UI engine: theme composition, visibility resolution, command history."""
