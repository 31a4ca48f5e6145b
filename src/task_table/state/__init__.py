from .squelch import Squelch

__all__ = ["Squelch"]
