from flask import Flask
from .auth import auth_bp
from .organizations import organizations_bp
from .users import users_bp
from .sites import sites_bp
from . import sites_crud, sites_assignments  # noqa: F401 (routes on sites_bp)
from .daily_reports import daily_reports_bp, admin_daily_reports_bp
from .documents import documents_bp
from .materials import materials_bp, admin_materials_bp
from .salary import salary_bp
from . import salary_records, salary_settings, salary_snapshots  # noqa: F401 (routes on salary_bp)
from .notifications import notifications_bp
from .mobile import mobile_bp
from .partner import partner_bp
from .audit_logs import audit_logs_bp


def register_blueprints(app: Flask):
    """Register all API blueprints."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(organizations_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(sites_bp)
    app.register_blueprint(daily_reports_bp)
    app.register_blueprint(admin_daily_reports_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(materials_bp)
    app.register_blueprint(admin_materials_bp)
    app.register_blueprint(salary_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(mobile_bp)
    app.register_blueprint(partner_bp)
    app.register_blueprint(audit_logs_bp)
