"""Core engine: manifest model and codec, path resolution, graph walking,
scope-aware merging, and manifest export."""
