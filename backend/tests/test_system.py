"""
Health endpoints and Flask CLI commands.
"""

from farmconnect.extensions import db
from farmconnect.models import OtpVerification, ProductCategory, User
from farmconnect.time_utils import utcnow

from datetime import timedelta


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"
        assert resp.json["timestamp"].endswith("Z")

    def test_health_db(self, client, db_session):
        resp = client.get("/health/db")
        assert resp.status_code == 200
        assert resp.json["database"] == "connected"

    def test_admin_health_requires_admin(self, client, buyer_headers, admin_headers):
        assert client.get("/api/v1/admin/health", headers=buyer_headers).status_code == 403
        assert client.get("/api/v1/admin/health", headers=admin_headers).status_code == 200


class TestCli:

    def test_system_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "Product categories created: 5" in result.output

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "Product categories created: 0" in result.output
        assert db.session.query(ProductCategory).count() == 5

    def test_create_admin(self, app, db_session):
        runner = app.test_cli_runner()
        args = ["users", "create-admin", "--email", "Root@Example.com", "--password", "Password123"]

        result = runner.invoke(args=args)
        assert result.exit_code == 0, result.output
        assert "Created admin: root@example.com" in result.output
        user = db.session.query(User).filter_by(email="root@example.com").one()
        assert user.user_type == "admin"

        result = runner.invoke(args=args)
        assert result.exit_code == 1
        assert "DUPLICATE_EMAIL" in result.output

    def test_users_list(self, app, buyer, farmer):
        result = app.test_cli_runner().invoke(args=["users", "list", "--user-type", "farmer"])
        assert result.exit_code == 0
        assert farmer.email in result.output
        assert buyer.email not in result.output

    def test_cleanup_otps(self, app, farmer):
        now = utcnow()
        db.session.add_all([
            OtpVerification(
                user_id=farmer.id, phone_number="0241234567", otp_code="111111",
                expires_at=now - timedelta(days=2), created_at=now - timedelta(days=2, minutes=10),
            ),
            OtpVerification(
                user_id=farmer.id, phone_number="0241234567", otp_code="222222",
                expires_at=now + timedelta(minutes=10), created_at=now,
            ),
        ])
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-otps", "--older-than-hours", "24"])
        assert result.exit_code == 0, result.output
        assert "Deleted 1 OTP record(s)" in result.output
        assert db.session.query(OtpVerification).count() == 1
