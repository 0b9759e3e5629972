"""Trial booking engine: availability search, round-robin assignment and lifecycle."""

__version__ = "0.1.0"
