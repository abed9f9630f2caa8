"""
Registre central des routers (API v1 commandes/paiements, health).
"""
from fastapi import FastAPI

from shop.health.router import router as health_router
from shop.orders import views as orders_views
from shop.payments import views as payments_views

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l’application.
    - L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes).
    """
    # API v1
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
