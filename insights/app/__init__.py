"""Journal insights application package."""
