"""Version 1 of the Research Store API."""
