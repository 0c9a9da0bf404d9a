"""Collection engine, result cache and bootstrap lifecycle."""
