"""autobot: scheduled, budget-capped automation tasks driven by a model runner."""

__version__ = "0.1.0"

__all__ = ["__version__"]
