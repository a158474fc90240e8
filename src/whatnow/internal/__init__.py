"""Implementation details not covered by the public API."""
