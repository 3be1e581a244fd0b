"""VCP: orchestration of privacy-preserving credential proofs."""

__version__ = "0.1.0"
