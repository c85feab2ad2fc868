import os
import click
from flask import Flask
from flask_cors import CORS

from fieldops_api.extensions import db, migrate, configure_db
from fieldops_api.common.errors import register_error_handlers
from fieldops_api.models import load_all

from datetime import timedelta, datetime
from decimal import Decimal
from flask_jwt_extended import JWTManager, create_access_token

jwt = JWTManager()


def create_app(config_object: str | None = None):
    app = Flask(__name__)

    # Basic inline config (defaults)
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=2)
    app.config["JWT_DECODE_LEEWAY"] = 120  # 2 minutes grace for clock skew
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["ENGINEER_COMMISSION_RATE"] = float(os.getenv("ENGINEER_COMMISSION_RATE", "0.25"))
    app.config["SUMMARY_REFRESH_SECONDS"] = int(os.getenv("SUMMARY_REFRESH_SECONDS", "300"))
    configure_db(app, os.getenv("DATABASE_URL", "sqlite:///fieldops_dev.db"))

    if config_object:
        try:
            app.config.from_object(config_object)
        except Exception as e:
            app.logger.warning("Could not import config object %r: %s", config_object, e)

    # CORS (dev)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Extensions
    db.init_app(app)
    register_error_handlers(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Ensure models are loaded so metadata is complete
    with app.app_context():
        load_all()

    # Blueprints
    from fieldops_api.blueprints.health import bp as health_bp
    from fieldops_api.blueprints.bills import bp as bills_bp
    from fieldops_api.blueprints.payments import bp as payments_bp
    from fieldops_api.blueprints.engineers import bp as engineers_bp
    from fieldops_api.blueprints.engineer_summary import bp as engineer_summary_bp
    from fieldops_api.blueprints.commissions import bp as commissions_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(engineers_bp)
    app.register_blueprint(engineer_summary_bp)
    app.register_blueprint(commissions_bp)

    # ----------------- CLI COMMANDS -----------------

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed two engineers with a few bills and payments."""
        from fieldops_api.models.bill import Bill
        from fieldops_api.models.engineer import Engineer
        from fieldops_api.models.payment import Payment
        from fieldops_api.blueprints.bills import default_commission

        def ensure_engineer(name: str, email: str, city: str):
            eng = Engineer.query.filter_by(email=email).first()
            if eng:
                return eng, False
            eng = Engineer(engineer_name=name, email=email, city=city)
            db.session.add(eng)
            db.session.commit()
            return eng, True

        raj, raj_created = ensure_engineer("Raj Kumar", "raj@fieldops.local", "Pune")
        amit, amit_created = ensure_engineer("Amit Shah", "amit@fieldops.local", "Mumbai")

        now = datetime.utcnow()
        if not Bill.query.first():
            for i, (eng, charge, days_ago) in enumerate(
                ((raj, 1000, 1), (raj, 600, 3), (raj, 800, 45), (amit, 1200, 2), (amit, 400, 70)),
                start=1,
            ):
                db.session.add(Bill(
                    bill_number=f"B-{i:04d}",
                    engineer_name=eng.engineer_name,
                    engineer_id=eng.id,
                    service_type="AC Service",
                    customer_name=f"Customer {i}",
                    service_charge=charge,
                    total=charge,
                    engineer_commission=default_commission(Decimal(charge)),
                    date=now - timedelta(days=days_ago),
                ))
            db.session.add(Payment(engineer_id=raj.id, engineer_name=raj.engineer_name, amount=300,
                                   date=now - timedelta(days=2)))
            db.session.commit()

        click.echo(
            "Seeded/ensured: "
            f"raj@fieldops.local ({'created' if raj_created else 'existing'}); "
            f"amit@fieldops.local ({'created' if amit_created else 'existing'})"
        )

    @app.cli.command("issue-token")
    @click.argument("email")
    @click.option("--role", "roles", multiple=True, default=("engineer",), help="Role code; repeatable")
    def issue_token(email: str, roles):
        """Print an access token for EMAIL (dev only)."""
        click.echo(create_access_token(identity=email, additional_claims={"roles": list(roles)}))

    @app.cli.command("refresh-summaries")
    @click.option("--timeout", type=float, default=60.0, help="Seconds to wait for the durable write")
    @click.option("--watch", is_flag=True, help="Keep refreshing every SUMMARY_REFRESH_SECONDS")
    def refresh_summaries(timeout: float, watch: bool):
        """Recompute every engineer summary and mirror it to engineer_summaries."""
        from fieldops_api.services.ledger import DatabaseLedger
        from fieldops_api.services.scheduler import RefreshScheduler
        from fieldops_api.services.summary_service import SummaryService

        service = SummaryService(DatabaseLedger(app))
        if watch:
            click.echo(f"Refreshing every {app.config['SUMMARY_REFRESH_SECONDS']}s, Ctrl+C to stop")
            RefreshScheduler(service, interval_s=app.config["SUMMARY_REFRESH_SECONDS"]).run_forever()
            return

        summaries = service.refresh_all_engineer_summaries()
        service.wait_for_persistence(timeout)
        service.executor.shutdown(wait=False)
        for s in summaries:
            flag = "" if s.matched is not False else "  (no directory entry)"
            click.echo(f"{s.engineer_name}: pending {s.pending_amount}{flag}")
        click.echo(f"Refreshed {len(summaries)} engineer summaries")

    return app
