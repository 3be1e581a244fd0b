"""Engine gateway: the only path from the orchestrator to cryptographic operations."""

from .client import CryptoLibrary, EngineGateway

__all__ = ["CryptoLibrary", "EngineGateway"]
