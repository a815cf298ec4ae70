"""Weather forecast API with a two-tier cache in front of the National Weather Service."""

__version__ = "1.0.0"
