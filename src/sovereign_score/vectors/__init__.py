"""Vector space: HHF coordinates, redundancy, embeddings, archive."""
