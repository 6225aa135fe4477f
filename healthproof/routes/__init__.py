def register_blueprints(app):
    from healthproof.routes.health import health_bp
    from healthproof.routes.auth import auth_bp
    from healthproof.routes.claims import claims_bp
    from healthproof.routes.coins import coins_bp
    from healthproof.routes.admin import admin_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(claims_bp, url_prefix='/api/claims')
    app.register_blueprint(coins_bp, url_prefix='/api/coins')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
