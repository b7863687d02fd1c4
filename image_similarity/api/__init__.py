"""HTTP adapter over the search core."""
