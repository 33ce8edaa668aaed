"""Core data types for the Content Understanding client."""
