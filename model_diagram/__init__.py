"""model-diagram: type declarations in, laid-out model diagram out."""

__version__ = "0.1.0"
