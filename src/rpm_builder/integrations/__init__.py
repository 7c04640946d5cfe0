"""Optional framework integrations (install the matching extra)."""
