"""HTTP read API for the auction indexer."""
