from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import mask_id_number

VERIFICATION_STEPS = 6  # steps 0..5


class FarmerVerification(db.Model):
    """
    Multi-step identity and farm verification record.

    WHY: Farmers fill the form one step at a time; level 1 is automated
    (ID format + OTP), level 2 is an admin review.
    At most one record per user is in status 'pending' at a time.
    """
    __tablename__ = "farmer_verifications"
    __table_args__ = (
        db.Index("ix_farmer_verifications_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    farmer_id = db.Column(db.Integer, db.ForeignKey("farmers.id", ondelete="CASCADE"), nullable=False)

    current_step = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default="pending")

    # Step 0: identity
    full_name = db.Column(db.String(200), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    gender = db.Column(db.String(20), nullable=True)
    national_id_type = db.Column(db.String(30), nullable=False, default="ghana_card")
    national_id_number = db.Column(db.String(50), nullable=True)
    phone_number = db.Column(db.String(20), nullable=True)
    id_format_valid = db.Column(db.Boolean, nullable=False, default=False)

    # Step 1: farm
    farm_name = db.Column(db.String(255), nullable=True)
    region = db.Column(db.String(100), nullable=True)
    district = db.Column(db.String(100), nullable=True)
    town_community = db.Column(db.String(100), nullable=True)
    gps_address = db.Column(db.String(100), nullable=True)
    farming_types = db.Column(db.JSON, nullable=True)
    produce_categories = db.Column(db.JSON, nullable=True)
    farm_size = db.Column(db.Float, nullable=True)
    years_of_experience = db.Column(db.Integer, nullable=True)

    # Step 2: payout
    mobile_money_provider = db.Column(db.String(50), nullable=True)
    mobile_money_number = db.Column(db.String(20), nullable=True)
    mobile_money_name = db.Column(db.String(200), nullable=True)
    account_holder_name = db.Column(db.String(200), nullable=True)
    preferred_payment_method = db.Column(db.String(50), nullable=True)
    mobile_money_name_matched = db.Column(db.Boolean, nullable=False, default=False)

    # Step 3: documents
    ghana_card_front_url = db.Column(db.String(500), nullable=True)
    ghana_card_back_url = db.Column(db.String(500), nullable=True)
    farm_photo_1_url = db.Column(db.String(500), nullable=True)
    farm_photo_2_url = db.Column(db.String(500), nullable=True)

    # Step 4: phone (OTP handled by otp_verifications)
    otp_verified = db.Column(db.Boolean, nullable=False, default=False)
    otp_verified_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Step 5: consent
    confirm_ownership = db.Column(db.Boolean, nullable=False, default=False)
    agree_to_terms = db.Column(db.Boolean, nullable=False, default=False)
    consent_to_verification = db.Column(db.Boolean, nullable=False, default=False)

    # Review
    level_1_status = db.Column(db.String(20), nullable=False, default="pending")
    level_1_completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    level_2_status = db.Column(db.String(20), nullable=False, default="pending")
    reviewed_by_admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])
    farmer = db.relationship("Farmer")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "farmer_id": self.farmer_id,
            "current_step": self.current_step,
            "status": self.status,
            "full_name": self.full_name,
            "national_id_type": self.national_id_type,
            "national_id_number": mask_id_number(self.national_id_number),
            "farm_name": self.farm_name,
            "region": self.region,
            "id_format_valid": self.id_format_valid,
            "mobile_money_name_matched": self.mobile_money_name_matched,
            "otp_verified": self.otp_verified,
            "level_1_status": self.level_1_status,
            "level_2_status": self.level_2_status,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "submitted_at": to_utc_z(self.submitted_at),
            "approved_at": to_utc_z(self.approved_at),
            "rejected_at": to_utc_z(self.rejected_at),
        }


class OtpVerification(db.Model):
    """
    One-time code sent to a phone number.

    WHY: attempts is bounded by max_attempts and codes expire; a consumed
    code (is_verified) can never be used again.
    """
    __tablename__ = "otp_verifications"
    __table_args__ = (
        db.Index("ix_otp_verifications_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False)
    otp_code = db.Column(db.String(10), nullable=False)
    purpose = db.Column(db.String(30), nullable=False, default="farmer_verification")
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=5)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
