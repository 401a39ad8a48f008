from datetime import date
from decimal import Decimal

import pytest

from app import create_app
from config import TestConfig
from extensions import db
from models import FeePayment, SchoolClass, Student
from utils.payments import new_receipt_url


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    with client.session_transaction() as sess:
        sess["admin_logged_in"] = True
    return client


@pytest.fixture
def school_class(app):
    klass = SchoolClass(name="Class 1", section="A")
    db.session.add(klass)
    db.session.commit()
    return klass


@pytest.fixture
def make_student(app, school_class):
    def _make(name="Asha Rao", **fields):
        fields.setdefault("father_name", "Ravi Rao")
        fields.setdefault("class_id", school_class.id)
        student = Student(student_name=name, **fields)
        db.session.add(student)
        db.session.commit()
        return student

    return _make


@pytest.fixture
def make_payment(app):
    def _make(student, amount="1000", paid_on=date(2025, 6, 5), status="completed", balance="0", method="cash"):
        payment = FeePayment(
            student_id=student.id,
            amount_received=Decimal(amount),
            payment_date=paid_on,
            payment_method=method,
            balance_remaining=Decimal(balance),
            payment_status=status,
            receipt_url=new_receipt_url(),
        )
        db.session.add(payment)
        db.session.commit()
        return payment

    return _make
