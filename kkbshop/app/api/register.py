from flask import Flask

from kkbshop.modules.auth.routes import bp as auth_bp
from kkbshop.modules.account.routes import bp as account_bp
from kkbshop.modules.catalog.routes import bp as catalog_bp
from kkbshop.modules.cart.routes import bp as cart_bp
from kkbshop.modules.checkout.routes import bp as checkout_bp
from kkbshop.modules.orders.routes import bp as orders_bp
from kkbshop.modules.admin.routes import bp as admin_bp


def register_api_blueprints(app: Flask) -> None:
    for bp in (auth_bp, account_bp, catalog_bp, cart_bp, checkout_bp, orders_bp, admin_bp):
        app.register_blueprint(bp, url_prefix="/api")

    # Root API document
    @app.get("/api")
    def api_index():
        return {
            "name": "KKB Shop API",
            "version": "0.1.0",
            "endpoints": {
                "auth": ["/users", "/auth/login", "/auth/logout", "/users/me"],
                "account": ["/account/profile", "/account/notifications"],
                "catalog": ["/categories", "/products", "/products/origins", "/products/<slug>", "/banners", "/contact"],
                "cart": ["/cart", "/cart/items", "/cart/items/<id>"],
                "checkout": ["/checkout/promo", "/checkout/quote", "/orders"],
                "orders": ["/orders", "/orders/<id>", "/orders/<id>/cancel"],
                "admin": [
                    "/admin/dashboard",
                    "/admin/banners",
                    "/admin/categories",
                    "/admin/products",
                    "/admin/promo-codes",
                    "/admin/discounts",
                    "/admin/orders",
                ],
            },
        }, 200
