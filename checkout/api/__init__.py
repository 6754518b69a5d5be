# checkout/api/__init__.py
from fastapi import FastAPI
from checkout.api.routers import carts, orders, health
from checkout.api.error_handlers import register_error_handlers

def create_app():
    app = FastAPI(title="Checkout Service", version="1.0.0")

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    return app
