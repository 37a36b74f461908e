"""Admin user management, dashboard and records."""
