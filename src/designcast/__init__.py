"""designcast: design-library publish notifications driven by semantic commits."""

__version__ = "0.1.0"
