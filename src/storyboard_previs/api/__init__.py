"""HTTP surface for the previs engine."""
