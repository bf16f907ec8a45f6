"""RFM customer segmentation over sales transactions."""

__version__ = "0.1.0"
