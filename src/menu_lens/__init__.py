"""Menu Lens: photograph a menu, get every notable dish explained."""

__version__ = "1.0.0"
