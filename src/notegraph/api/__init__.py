"""HTTP surface for the graph view."""
