"""Graph construction, validation and dependency analysis for markdown trees."""
