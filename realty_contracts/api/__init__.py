"""HTTP surface of the contract lifecycle service."""
