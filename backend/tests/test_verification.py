"""
Farmer verification tests.

Verifies:
- Step intake validation (identity, farm, payout, consent)
- OTP cooldown, expiry and attempt limits
- Submission and the automated level-1 result
- Admin approve / reject (level 2)
"""

from datetime import timedelta

import pytest

from farmconnect.extensions import db
from farmconnect.models import AdminApproval, FarmerVerification, OtpVerification, User
from farmconnect.time_utils import utcnow


BASE = "/api/v1/farmers/verify"

IDENTITY = {
    "full_name": "Ama Owusu",
    "date_of_birth": "1990-04-12",
    "national_id_type": "ghana_card",
    "national_id_number": "GHA-1234567-8",
    "phone_number": "0241234567",
}
FARM = {"farm_name": "Owusu Farms", "region": "Ashanti", "gps_address": "AK-123-4567", "farming_types": ["crop"]}
PAYOUT = {
    "mobile_money_provider": "mtn",
    "mobile_money_number": "0241234567",
    "mobile_money_name": "AMA OWUSU",
    "account_holder_name": "Ama Owusu",
}
CONSENT = {"confirm_ownership": True, "agree_to_terms": True, "consent_to_verification": True}


def step(client, headers, number, data):
    return client.post(f"{BASE}/step/{number}", json=data, headers=headers)


def wrong_code(code: str) -> str:
    return "111111" if code == "000000" else "000000"


@pytest.fixture
def started(client, farmer_headers):
    resp = client.post(f"{BASE}/initiate", headers=farmer_headers)
    assert resp.status_code == 201
    return resp.json["data"]


def send_and_verify_otp(client, headers):
    sent = client.post(f"{BASE}/otp/send", json={"phone_number": "0241234567"}, headers=headers)
    assert sent.status_code == 200, sent.json
    resp = client.post(f"{BASE}/otp/verify", json={"otp_code": sent.json["data"]["demo_otp"]}, headers=headers)
    assert resp.status_code == 200, resp.json


def complete_form(client, headers, *, with_otp=True):
    assert step(client, headers, 0, IDENTITY).status_code == 200
    assert step(client, headers, 1, FARM).status_code == 200
    assert step(client, headers, 2, PAYOUT).status_code == 200
    if with_otp:
        send_and_verify_otp(client, headers)
    assert step(client, headers, 5, CONSENT).status_code == 200


# =============================================================================
# INTAKE
# =============================================================================


class TestIntake:

    def test_initiate_twice_conflicts(self, client, farmer_headers, started):
        assert started["current_step"] == 0
        assert started["status"] == "pending"
        resp = client.post(f"{BASE}/initiate", headers=farmer_headers)
        assert resp.status_code == 409
        assert resp.json["error"]["code"] == "VERIFICATION_IN_PROGRESS"

    def test_buyer_is_forbidden(self, client, buyer_headers):
        assert client.post(f"{BASE}/initiate", headers=buyer_headers).status_code == 403

    def test_status_before_start(self, client, farmer_headers):
        resp = client.get(f"{BASE}/status", headers=farmer_headers)
        assert resp.json["data"]["status"] == "not_started"
        assert resp.json["data"]["verification_status"] == "unverified"

    def test_steps_advance_current_step(self, client, farmer_headers, started):
        resp = step(client, farmer_headers, 0, IDENTITY)
        assert resp.json["data"]["current_step"] == 1
        resp = step(client, farmer_headers, 2, PAYOUT)
        assert resp.json["data"]["current_step"] == 3

        # Re-submitting an earlier step never moves the pointer back
        resp = step(client, farmer_headers, 0, IDENTITY)
        assert resp.json["data"]["current_step"] == 3

        status = client.get(f"{BASE}/status", headers=farmer_headers).json["data"]
        assert status["id_format_valid"] is True
        assert status["mobile_money_name_matched"] is True

    def test_bad_id_format(self, client, farmer_headers, started):
        resp = step(client, farmer_headers, 0, dict(IDENTITY, national_id_number="GHA-123-4"))
        assert resp.status_code == 422
        assert resp.json["error"]["details"]["field"] == "national_id_number"

    def test_missing_step_field(self, client, farmer_headers, started):
        resp = step(client, farmer_headers, 1, {"farm_name": "Owusu Farms", "region": "Ashanti"})
        assert resp.status_code == 422
        assert resp.json["error"]["message"] == "GPS address required"

    def test_farm_lists_are_stored(self, client, farmer_headers, started):
        resp = step(client, farmer_headers, 1, dict(FARM, produce_categories=["vegetables", "grains"]))
        assert resp.status_code == 200

        db.session.expire_all()
        verification = db.session.get(FarmerVerification, started["verification_id"])
        assert verification.farming_types == ["crop"]
        assert verification.produce_categories == ["vegetables", "grains"]

    @pytest.mark.parametrize(
        "field,value",
        [("farming_types", "maize"), ("farming_types", 3), ("produce_categories", ["grains", 2])],
    )
    def test_farm_lists_must_hold_strings(self, client, farmer_headers, started, field, value):
        resp = step(client, farmer_headers, 1, dict(FARM, **{field: value}))
        assert resp.status_code == 422
        assert resp.json["error"]["details"]["field"] == field

    def test_status_masks_id_number(self, client, farmer_headers, started):
        step(client, farmer_headers, 0, IDENTITY)
        status = client.get(f"{BASE}/status", headers=farmer_headers).json["data"]
        assert status["national_id_number"] == "GHA-*********"

    def test_bad_mobile_money_number(self, client, farmer_headers, started):
        resp = step(client, farmer_headers, 2, dict(PAYOUT, mobile_money_number="12345"))
        assert resp.status_code == 422
        assert resp.json["error"]["details"]["field"] == "mobile_money_number"

    @pytest.mark.parametrize("number", ["6", "-1", "abc"])
    def test_invalid_step(self, client, farmer_headers, started, number):
        resp = step(client, farmer_headers, number, {})
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_STEP"

    def test_step_without_verification(self, client, farmer_headers):
        resp = step(client, farmer_headers, 0, IDENTITY)
        assert resp.status_code == 404
        assert resp.json["error"]["code"] == "VERIFICATION_NOT_FOUND"


# =============================================================================
# OTP
# =============================================================================


class TestOtp:

    def test_send_and_verify(self, client, farmer, farmer_headers, started):
        send_and_verify_otp(client, farmer_headers)
        db.session.expire_all()
        assert db.session.get(User, farmer.id).phone_verified is True
        status = client.get(f"{BASE}/status", headers=farmer_headers).json["data"]
        assert status["otp_verified"] is True

    def test_resend_cooldown(self, client, farmer_headers, started):
        first = client.post(f"{BASE}/otp/send", json={"phone_number": "0241234567"}, headers=farmer_headers)
        assert first.status_code == 200
        assert "demo_otp" in first.json["data"]
        second = client.post(f"{BASE}/otp/send", json={"phone_number": "0241234567"}, headers=farmer_headers)
        assert second.status_code == 429
        assert second.json["error"]["code"] == "OTP_RATE_LIMITED"
        assert 0 < second.json["error"]["details"]["retry_after_seconds"] <= 60

    def test_invalid_phone(self, client, farmer_headers, started):
        resp = client.post(f"{BASE}/otp/send", json={"phone_number": "+233241234567"}, headers=farmer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INVALID_PHONE"

    def test_expired_code(self, client, farmer_headers, started):
        sent = client.post(f"{BASE}/otp/send", json={"phone_number": "0241234567"}, headers=farmer_headers)
        otp = db.session.query(OtpVerification).one()
        otp.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        resp = client.post(f"{BASE}/otp/verify", json={"otp_code": sent.json["data"]["demo_otp"]},
                           headers=farmer_headers)
        assert resp.status_code == 410
        assert resp.json["error"]["code"] == "OTP_EXPIRED"

    def test_attempts_are_bounded(self, client, farmer_headers, started):
        sent = client.post(f"{BASE}/otp/send", json={"phone_number": "0241234567"}, headers=farmer_headers)
        code = sent.json["data"]["demo_otp"]

        for remaining in (4, 3, 2, 1, 0):
            resp = client.post(f"{BASE}/otp/verify", json={"otp_code": wrong_code(code)}, headers=farmer_headers)
            assert resp.status_code == 401
            assert resp.json["error"]["code"] == "INVALID_OTP"
            assert resp.json["error"]["details"]["attempts_remaining"] == remaining

        # Even the right code is refused once attempts are used up
        resp = client.post(f"{BASE}/otp/verify", json={"otp_code": code}, headers=farmer_headers)
        assert resp.status_code == 429
        assert resp.json["error"]["code"] == "OTP_TOO_MANY_ATTEMPTS"

    def test_verify_without_code_sent(self, client, farmer_headers, started):
        resp = client.post(f"{BASE}/otp/verify", json={"otp_code": "123456"}, headers=farmer_headers)
        assert resp.status_code == 401
        assert resp.json["error"]["code"] == "INVALID_OTP"


# =============================================================================
# SUBMISSION
# =============================================================================


class TestSubmit:

    def test_submit_passes_level_one(self, client, farmer, farmer_headers, started):
        complete_form(client, farmer_headers)
        resp = client.post(f"{BASE}/submit", headers=farmer_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["level_1_status"] == "passed"
        assert resp.json["data"]["submitted_at"] is not None

        db.session.expire_all()
        assert db.session.get(User, farmer.id).verification_status == "pending"

        # Submitted forms are frozen
        assert step(client, farmer_headers, 1, FARM).status_code == 409

    def test_submit_without_otp_fails_level_one(self, client, farmer_headers, started):
        complete_form(client, farmer_headers, with_otp=False)
        resp = client.post(f"{BASE}/submit", headers=farmer_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["level_1_status"] == "failed"

    def test_incomplete_form(self, client, farmer_headers, started):
        step(client, farmer_headers, 0, IDENTITY)
        resp = client.post(f"{BASE}/submit", headers=farmer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "INCOMPLETE_VERIFICATION"

    def test_terms_required(self, client, farmer_headers, started):
        step(client, farmer_headers, 0, IDENTITY)
        step(client, farmer_headers, 1, FARM)
        step(client, farmer_headers, 2, PAYOUT)
        step(client, farmer_headers, 5, dict(CONSENT, agree_to_terms=False))
        resp = client.post(f"{BASE}/submit", headers=farmer_headers)
        assert resp.status_code == 400
        assert resp.json["error"]["code"] == "TERMS_NOT_ACCEPTED"


# =============================================================================
# ADMIN REVIEW
# =============================================================================


class TestAdminReview:

    def _submitted(self, client, farmer_headers):
        client.post(f"{BASE}/initiate", headers=farmer_headers)
        complete_form(client, farmer_headers)
        return client.post(f"{BASE}/submit", headers=farmer_headers).json["data"]["verification_id"]

    def test_pending_queue_and_approve(self, client, farmer, farmer_headers, admin, admin_headers):
        verification_id = self._submitted(client, farmer_headers)

        queue = client.get("/api/v1/admin/verifications/pending", headers=admin_headers)
        assert [v["id"] for v in queue.json["data"]] == [verification_id]
        assert queue.json["data"][0]["email"] == farmer.email

        resp = client.post(f"/api/v1/admin/verifications/{verification_id}/approve",
                           json={"notes": "Documents look good"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "approved"
        assert resp.json["data"]["level_2_status"] == "approved"

        db.session.expire_all()
        user = db.session.get(User, farmer.id)
        assert user.verification_status == "approved"
        assert user.is_verified is True
        assert user.farmer.is_approved is True
        assert db.session.query(AdminApproval).filter_by(resource_id=verification_id, action="approved").count() == 1

        # Decisions are final
        again = client.post(f"/api/v1/admin/verifications/{verification_id}/reject",
                            json={"reason": "Changed mind"}, headers=admin_headers)
        assert again.status_code == 409
        assert again.json["error"]["code"] == "VERIFICATION_ALREADY_REVIEWED"

        notices = client.get("/api/v1/notifications", headers=farmer_headers).json["data"]
        assert notices[0]["notification_type"] == "verification_approved"

        logs = client.get("/api/v1/admin/audit-logs", query_string={"action": "verification.approve"},
                          headers=admin_headers)
        assert logs.json["pagination"]["total"] == 1

    def test_reject_requires_reason(self, client, farmer, farmer_headers, admin_headers):
        verification_id = self._submitted(client, farmer_headers)

        resp = client.post(f"/api/v1/admin/verifications/{verification_id}/reject", json={},
                           headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(f"/api/v1/admin/verifications/{verification_id}/reject",
                           json={"reason": "Blurry ID photo"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["rejection_reason"] == "Blurry ID photo"

        db.session.expire_all()
        assert db.session.get(User, farmer.id).verification_status == "rejected"

        # A rejected farmer may start again
        assert client.post(f"{BASE}/initiate", headers=farmer_headers).status_code == 201

    def test_farmer_cannot_approve(self, client, farmer_headers):
        resp = client.post("/api/v1/admin/verifications/1/approve", headers=farmer_headers)
        assert resp.status_code == 403
