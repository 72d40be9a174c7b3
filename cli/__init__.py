"""StateProof command line tools."""
