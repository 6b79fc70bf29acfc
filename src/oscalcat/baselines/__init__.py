"""NIST baseline resolution and FedRAMP baseline derivation."""
