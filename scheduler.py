from apscheduler.schedulers.background import BackgroundScheduler
from flask_mail import Message
from flask import current_app
from smtplib import SMTPException

from extensions import mail
from utils.birthdays import birthdays
from utils.timezone_helpers import school_today, school_tz


def build_digest(students, today):
    lines = [f"Birthdays today ({today.isoformat()}):", ""]
    for s in students:
        klass = s.get("class") or {}
        label = " ".join(part for part in (klass.get("name"), klass.get("section")) if part)
        suffix = f", class {label}" if label else ""
        lines.append(f"- {s['student_name']} turns {s['age']}{suffix}")
    return "\n".join(lines)


def birthday_digest_job(app):
    """Email today's birthdays to the configured recipients; returns how many were listed."""
    with app.app_context():
        recipients = list(current_app.config.get("BIRTHDAY_DIGEST_RECIPIENTS") or ())
        if not recipients:
            current_app.logger.info("Birthday digest skipped: no recipients configured")
            return 0
        today = school_today()
        students = birthdays("today", today=today)
        if not students:
            current_app.logger.info("No birthdays on %s", today.isoformat())
            return 0
        school = current_app.config.get("SCHOOL_NAME", "School")
        msg = Message(
            subject=f"{school} | {len(students)} birthday(s) today",
            sender=current_app.config.get("MAIL_DEFAULT_SENDER"),
            recipients=recipients,
            body=build_digest(students, today),
        )
        try:
            mail.send(msg)
            current_app.logger.info("Birthday digest sent to %s", ", ".join(recipients))
        except (SMTPException, OSError):
            current_app.logger.exception("Failed to send birthday digest")
        return len(students)


def start_scheduler(app):
    scheduler = BackgroundScheduler(timezone=_tz_for(app))
    scheduler.add_job(
        lambda: birthday_digest_job(app),
        "cron",
        hour=app.config.get("BIRTHDAY_DIGEST_HOUR", 7),
        minute=0,
        id="birthday_digest",
        replace_existing=True,
    )
    scheduler.start()
    app.logger.info("Scheduler started")
    return scheduler


def _tz_for(app):
    with app.app_context():
        return school_tz()
