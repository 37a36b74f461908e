"""Teacher classes, enrollment and class materials."""
