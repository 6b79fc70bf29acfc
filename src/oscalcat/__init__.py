"""oscalcat: NIST SP 800-53 OSCAL catalog flattening and baseline derivation."""

__version__ = "1.0.0"
