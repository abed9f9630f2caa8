"""
Module 'orders' (feature-first): modèles, calcul des totaux, saga de matérialisation,
fidélité et actions admin. Les vues sont enregistrées par shop.app_setup.routers.
"""
