from ..extensions import db


class Booking(db.Model):
    __tablename__ = "booking"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.String(64), nullable=False, unique=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("console_profile.id"), nullable=False, index=True)
    contractor_number = db.Column(db.String(32), index=True)
    route_number = db.Column(db.String(16))
    full_address = db.Column(db.String(255), default="")

    price = db.Column(db.Numeric(12, 2), default=0)
    payment_method = db.Column(db.String(64), default="")  # Cash|Cheque|E-Transfer|Credit Card|Billed|IOS|...
    prepaid = db.Column(db.Boolean, default=False)

    is_prebooked = db.Column(db.Boolean, default=False)
    is_contract = db.Column(db.Boolean, default=False)
    upsell_code = db.Column(db.String(64))

    completed = db.Column(db.Boolean, default=False)
    date_completed = db.Column(db.DateTime, index=True)
    status = db.Column(db.String(24), default="pending")  # pending|contract|cancelled|next_time|redo|ref/dnb
