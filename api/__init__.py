"""HTTP surface for Night Protocol."""
