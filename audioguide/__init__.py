"""Audio guide client core: entitlement gating, demo playback and offline cache."""

__version__ = "0.1.0"
