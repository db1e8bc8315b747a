"""Journal insights pipeline."""
