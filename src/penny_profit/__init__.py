"""
Penny Profit - Investment Calculator
Computes the position size needed to earn a target profit per one-cent price move,
keeps a local history of calculations, and relays questions to an AI assistant.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
