"""Family volunteer hours tracker API."""
