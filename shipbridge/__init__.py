"""shipbridge - one rate, label and tracking contract over many carrier APIs."""

__version__ = "0.3.0"
