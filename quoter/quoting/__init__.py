"""Quote pipeline: validation, route request building, formatting."""
