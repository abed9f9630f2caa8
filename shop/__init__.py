"""Backend boutique: checkout cash / carte (Stripe) et matérialisation des commandes."""

__version__ = "1.0.0"
