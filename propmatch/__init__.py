"""Subject-property identification for apartment market analysis."""
