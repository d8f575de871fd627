"""Text, JSON and grep renderings of lint, dependency and content results."""
