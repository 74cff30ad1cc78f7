"""checkplan: maintenance check scheduling and delayed-check detection."""

__version__ = "0.1.0"
