"""Record keeping for a print shop: clients, inventory and delivery chalans."""

__version__ = "0.1.0"
