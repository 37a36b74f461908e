"""Admin-teacher and student-teacher messaging."""
