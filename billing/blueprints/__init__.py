"""Blueprint packages (catalog, bills, imports, settings, api)."""
