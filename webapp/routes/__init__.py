"""HTTP routes exposing the tree query worker."""
