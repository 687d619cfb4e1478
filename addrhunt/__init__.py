"""Random secp256k1 key search against a set of target addresses."""

__version__ = "0.1.0"
