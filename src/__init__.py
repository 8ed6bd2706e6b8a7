"""wavebrief - staged long-form brief generation with persisted progress."""

from wavebrief.version import __version__

__all__ = ["__version__"]
