"""Application layer: catalog services driving the indexing pipeline."""
