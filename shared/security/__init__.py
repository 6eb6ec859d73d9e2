"""Security: JWT signing and verification."""
