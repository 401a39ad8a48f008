import argparse
import os
import random
import string
import sys
from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

# Ensure project root is importable when running from scripts/
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from models import PAYMENT_METHODS, FeePayment, SchoolClass, Student  # noqa: E402
from utils.payments import new_receipt_url  # noqa: E402


FIRST_NAMES = [
    "Aarav", "Vivaan", "Aditya", "Ananya", "Diya", "Ishaan", "Kavya", "Arjun",
    "Meera", "Rohan", "Saanvi", "Kabir", "Anika", "Vihaan", "Riya", "Aryan",
]

LAST_NAMES = [
    "Sharma", "Verma", "Gupta", "Iyer", "Reddy", "Nair", "Patel", "Singh",
    "Das", "Menon", "Joshi", "Kulkarni", "Rao", "Khan", "Bose",
]

CLASS_NAMES = ["Nursery", "LKG", "UKG", *(f"Class {i}" for i in range(1, 6))]


def random_phone() -> str:
    return "9" + "".join(random.choice(string.digits) for _ in range(9))


def random_birthday(today: date) -> date:
    years = random.randint(3, 11)
    return today - timedelta(days=years * 365 + random.randint(0, 364))


def seed(per_class: int, months: int, fee: Decimal) -> None:
    today = date.today()
    classes = []
    for name in CLASS_NAMES:
        klass = SchoolClass.query.filter_by(name=name, section="A").first()
        if klass is None:
            klass = SchoolClass(name=name, section="A")
            db.session.add(klass)
        classes.append(klass)
    db.session.flush()

    created_students = 0
    created_payments = 0
    for klass in classes:
        for _ in range(per_class):
            last = random.choice(LAST_NAMES)
            student = Student(
                class_id=klass.id,
                student_name=f"{random.choice(FIRST_NAMES)} {last}",
                father_name=f"{random.choice(FIRST_NAMES)} {last}",
                mother_name=f"{random.choice(FIRST_NAMES)} {last}",
                father_mobile=random_phone(),
                date_of_birth=random_birthday(today),
                admission_date=today - timedelta(days=random.randint(30, 900)),
                fees_amount=fee,
            )
            db.session.add(student)
            created_students += 1

            for back in range(months):
                first_of_month = today.replace(day=1) - relativedelta(months=back)
                roll = random.random()
                if roll < 0.15:
                    continue  # no payment this month
                paid = fee if roll > 0.35 else (fee * Decimal("0.5")).quantize(Decimal("0.01"))
                db.session.add(
                    FeePayment(
                        student=student,
                        amount_received=paid,
                        payment_date=first_of_month + timedelta(days=random.randint(0, 9)),
                        payment_method=random.choice(PAYMENT_METHODS),
                        balance_remaining=fee - paid,
                        payment_status="completed" if paid == fee else "partial",
                        receipt_url=new_receipt_url(),
                    )
                )
                created_payments += 1
    db.session.commit()
    print(f"Seeded {len(classes)} classes, {created_students} students, {created_payments} payments")


def main():
    parser = argparse.ArgumentParser(description="Populate classes, students and payments for local development")
    parser.add_argument("--per-class", type=int, default=8, help="students per class")
    parser.add_argument("--months", type=int, default=3, help="months of payment history")
    parser.add_argument("--fee", default="1000", help="monthly fee per student")
    parser.add_argument("--seed", type=int, default=None, help="random seed for repeatable data")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    app = create_app()
    with app.app_context():
        seed(args.per_class, args.months, Decimal(args.fee))


if __name__ == "__main__":
    main()
