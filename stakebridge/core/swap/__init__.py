"""Same-chain swap quoting for the gas and governance-token legs."""
