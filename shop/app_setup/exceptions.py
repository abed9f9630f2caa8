"""
Gestionnaires d’exceptions utilisés par la factory.
- ShopError (erreurs métier du checkout): {"detail", "kind"} avec le code HTTP de l'erreur.
- HTTPException: body JSON FastAPI standard.
"""
import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from shop.orders.errors import ShopError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers ShopError et HTTPException.
    - Les erreurs 5xx métier sont journalisées: elles signalent un état partiel à réconcilier.
    """
    @app.exception_handler(ShopError)
    async def shop_error_handler(request: Request, exc: ShopError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "kind": exc.kind})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
