"""Test helpers."""

from .fake_engine import AC2C_DECRYPTION_REASON, EngineFault, FakeEngine

__all__ = ["AC2C_DECRYPTION_REASON", "EngineFault", "FakeEngine"]
