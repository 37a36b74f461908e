"""Grade settings, term scores and grade computation."""
