"""Statistical assessment of model performance across repeated splits."""

__version__ = "0.1.0"
