"""Submit, poll and decode stages of a long-running operation."""
