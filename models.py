import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import event

from extensions import db


PAYMENT_METHODS = ("cash", "card", "upi", "bank_transfer", "cheque")
PAYMENT_STATUSES = ("completed", "partial", "pending")
ATTENDANCE_STATUSES = ("PRESENT", "ABSENT", "LATE", "HALF_DAY")
RECIPIENT_TYPES = ("father", "mother", "both")
DELIVERY_STATUSES = ("pending", "sent", "delivered", "failed")


def _uuid() -> str:
    return str(uuid.uuid4())


def _money(value):
    if value is None:
        return None
    return float(value)


def _iso(value):
    return value.isoformat() if value is not None else None


class SchoolClass(db.Model):
    __tablename__ = "classes"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(50), nullable=False)
    section = db.Column(db.String(20), nullable=False, default="")

    students = db.relationship("Student", back_populates="school_class")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "section": self.section or ""}

    def __repr__(self):
        return f"<SchoolClass {self.name} {self.section}>"


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    class_id = db.Column(
        db.String(36), db.ForeignKey("classes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    student_name = db.Column(db.String(150), nullable=False, index=True)
    father_name = db.Column(db.String(150), nullable=False)
    mother_name = db.Column(db.String(150))
    father_mobile = db.Column(db.String(20))
    mother_mobile = db.Column(db.String(20))
    student_photo_url = db.Column(db.Text)
    father_photo_url = db.Column(db.Text)
    mother_photo_url = db.Column(db.Text)
    date_of_birth = db.Column(db.Date)
    address = db.Column(db.Text)
    gender = db.Column(db.String(20))
    email = db.Column(db.String(255))
    blood_group = db.Column(db.String(5))
    emergency_contact = db.Column(db.String(20))
    previous_school = db.Column(db.String(200))
    admission_date = db.Column(db.Date)
    # Per-student monthly fee; reconciliation falls back to DEFAULT_MONTHLY_FEE
    fees_amount = db.Column(db.Numeric(10, 2))
    transport_required = db.Column(db.Boolean, nullable=False, default=False)
    medical_conditions = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    school_class = db.relationship("SchoolClass", back_populates="students")
    payments = db.relationship(
        "FeePayment", back_populates="student", cascade="all, delete-orphan"
    )
    attendance = db.relationship("Attendance", back_populates="student", cascade="all, delete-orphan")
    attendance_messages = db.relationship(
        "AttendanceMessage", back_populates="student", cascade="all, delete-orphan"
    )
    birthday_messages = db.relationship("BirthdayMessage", cascade="all, delete-orphan")

    @property
    def class_name(self):
        return self.school_class.name if self.school_class else None

    @property
    def class_section(self):
        return self.school_class.section if self.school_class else None

    def to_dict(self):
        return {
            "id": self.id,
            "class_id": self.class_id,
            "student_name": self.student_name,
            "father_name": self.father_name,
            "mother_name": self.mother_name,
            "father_mobile": self.father_mobile,
            "mother_mobile": self.mother_mobile,
            "student_photo_url": self.student_photo_url,
            "father_photo_url": self.father_photo_url,
            "mother_photo_url": self.mother_photo_url,
            "date_of_birth": _iso(self.date_of_birth),
            "address": self.address,
            "gender": self.gender,
            "email": self.email,
            "blood_group": self.blood_group,
            "emergency_contact": self.emergency_contact,
            "previous_school": self.previous_school,
            "admission_date": _iso(self.admission_date),
            "fees_amount": _money(self.fees_amount),
            "transport_required": bool(self.transport_required),
            "medical_conditions": self.medical_conditions,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "class": (
                {"name": self.school_class.name, "section": self.school_class.section or ""}
                if self.school_class
                else None
            ),
        }

    def __repr__(self):
        return f"<Student {self.student_name} ({self.id})>"


class FeePayment(db.Model):
    __tablename__ = "fee_payments"
    __table_args__ = (
        db.Index("idx_fee_payments_month_year", "fee_month", "fee_year"),
        db.Index("idx_fee_payments_has_updates", "has_updates"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    student_id = db.Column(
        db.String(36), db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount_received = db.Column(db.Numeric(10, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False, index=True)
    payment_method = db.Column(db.String(20), nullable=False)
    balance_remaining = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    payment_status = db.Column(db.String(20), nullable=False)
    notes = db.Column(db.Text)
    receipt_url = db.Column(db.String(120), unique=True, nullable=False)
    has_updates = db.Column(db.Boolean, nullable=False, default=False)
    # Always derived from payment_date, see _derive_fee_period below
    fee_month = db.Column(db.Integer)
    fee_year = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship("Student", back_populates="payments")
    history = db.relationship(
        "FeeHistoryUpdate",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="FeeHistoryUpdate.created_at.desc()",
    )

    def to_dict(self, with_student: bool = False):
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "amount_received": _money(self.amount_received),
            "payment_date": _iso(self.payment_date),
            "payment_method": self.payment_method,
            "balance_remaining": _money(self.balance_remaining),
            "payment_status": self.payment_status,
            "notes": self.notes,
            "receipt_url": self.receipt_url,
            "has_updates": bool(self.has_updates),
            "fee_month": self.fee_month,
            "fee_year": self.fee_year,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_student:
            data["student"] = self.student.to_dict() if self.student else None
        return data

    def __repr__(self):
        return f"<FeePayment StudentID={self.student_id} Paid={self.amount_received}>"


@event.listens_for(FeePayment, "before_insert")
@event.listens_for(FeePayment, "before_update")
def _derive_fee_period(mapper, connection, target):
    if target.payment_date is not None:
        target.fee_month = target.payment_date.month
        target.fee_year = target.payment_date.year


class FeeHistoryUpdate(db.Model):
    __tablename__ = "fee_history_updates"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    fee_payment_id = db.Column(
        db.String(36), db.ForeignKey("fee_payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    field_name = db.Column(db.String(64), nullable=False)
    old_value = db.Column(db.Text)
    new_value = db.Column(db.Text)
    updated_by = db.Column(db.String(120), nullable=False, default="system")
    update_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    payment = db.relationship("FeePayment", back_populates="history")

    def to_dict(self):
        return {
            "id": self.id,
            "fee_payment_id": self.fee_payment_id,
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "updated_by": self.updated_by,
            "update_reason": self.update_reason,
            "created_at": _iso(self.created_at),
        }


class Attendance(db.Model):
    __tablename__ = "attendance"
    __table_args__ = (db.UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),)

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    student_id = db.Column(
        db.String(36), db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id = db.Column(db.String(36), nullable=True)
    date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.String(10), nullable=False)
    description = db.Column(db.Text)
    created_by = db.Column(db.String(120))
    last_modified_by = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship("Student", back_populates="attendance")

    def to_dict(self, with_student: bool = False):
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "class_id": self.class_id,
            "date": _iso(self.date),
            "status": self.status,
            "description": self.description,
            "created_by": self.created_by,
            "last_modified_by": self.last_modified_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_student:
            data["student"] = self.student.to_dict() if self.student else None
        return data


class AttendanceMessage(db.Model):
    __tablename__ = "attendance_messages"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    student_id = db.Column(
        db.String(36), db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = db.Column(db.Date, nullable=False, index=True)
    message_content = db.Column(db.Text, nullable=False)
    recipient_type = db.Column(db.String(10), nullable=False)
    recipient_number = db.Column(db.String(20), nullable=False)
    delivery_status = db.Column(db.String(10), nullable=False, default="pending")
    sent_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship("Student", back_populates="attendance_messages")

    def to_dict(self, with_student: bool = False):
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "date": _iso(self.date),
            "message_content": self.message_content,
            "recipient_type": self.recipient_type,
            "recipient_number": self.recipient_number,
            "delivery_status": self.delivery_status,
            "sent_at": _iso(self.sent_at),
            "created_at": _iso(self.created_at),
        }
        if with_student:
            data["student"] = self.student.to_dict() if self.student else None
        return data


class BirthdayMessage(db.Model):
    __tablename__ = "birthday_messages"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    student_id = db.Column(
        db.String(36), db.ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    message_content = db.Column(db.Text, nullable=False)
    sent_to = db.Column(db.String(10), nullable=False)
    phone_number = db.Column(db.String(20))
    sent_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "message_content": self.message_content,
            "sent_to": self.sent_to,
            "phone_number": self.phone_number,
            "sent_at": _iso(self.sent_at),
            "created_at": _iso(self.created_at),
        }
