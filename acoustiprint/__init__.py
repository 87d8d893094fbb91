"""Audio power spectra, fingerprint compression and fingerprint matching."""

__version__ = "1.5.1"

__all__ = ["fft", "compression", "matcher"]