"""
Outgoing mail: welcome messages and task due-date reminders over SMTP.
"""
import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache
from html import escape
from typing import Optional

from ..config import (
    MAIL_FROM,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_TIMEOUT,
    SMTP_USE_TLS,
    SMTP_USER,
)
from ..models import Priority, Task

logger = logging.getLogger("taskflow.mail")

PRIORITY_COLORS = {
    Priority.HIGH: "#EF4444",
    Priority.MEDIUM: "#F59E0B",
    Priority.LOW: "#10B981",
}


def reminder_subject(task: Task, hours_left: int) -> str:
    urgency = "URGENT" if hours_left <= 12 else "REMINDER"
    return f'{urgency}: Task "{task.title}" due in {hours_left} hours!'


def reminder_body(name: str, task: Task, hours_left: int) -> str:
    urgent = hours_left <= 12
    urgency_color = "#EF4444" if urgent else "#F59E0B"
    priority_color = PRIORITY_COLORS.get(task.priority, "#6B7280")
    due = task.due_date.strftime("%Y-%m-%d at %H:%M UTC") if task.due_date else "no due date"
    nudge = (
        "This is urgent! Complete your task soon."
        if urgent
        else "Don't forget to complete your task!"
    )
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: {urgency_color}; color: white; padding: 15px;">
    <h2 style="margin: 0;">{"URGENT" if urgent else "REMINDER"}: Task Due Soon!</h2>
  </div>
  <div style="padding: 20px; border: 1px solid #E5E7EB;">
    <h3>Hi {escape(name)},</h3>
    <p>Your task is due in <strong style="color: {urgency_color};">{hours_left} hours</strong>!</p>
    <div style="padding: 20px; border-left: 4px solid {priority_color};">
      <h4>{escape(task.title)}</h4>
      <p><strong>Description:</strong> {escape(task.description or "No description provided")}</p>
      <p>{task.priority.value} Priority &middot; Due: {due}</p>
    </div>
    <p style="color: {urgency_color}; font-weight: bold;">{nudge}</p>
    <p style="color: #6B7280; font-size: 12px;">
      You're receiving this because you have an upcoming task deadline.
      Once you mark the task as completed, you won't receive further reminders.
    </p>
  </div>
</div>
"""


def welcome_body(name: str) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4F46E5;">Welcome to Task Manager, {escape(name)}!</h2>
  <p>Thank you for signing up! We're excited to have you on board.</p>
  <ul>
    <li>Start creating your first task</li>
    <li>Organize tasks by priority</li>
    <li>Set due dates to stay on track</li>
  </ul>
  <p style="color: #6B7280; font-size: 12px;">Best regards,<br>Task Manager Team</p>
</div>
"""


class Mailer:
    """SMTP mail transport.

    ``send`` raises on transport errors; the ``send_*`` helpers log the
    failure and return False so callers can decide what to leave untouched.
    """

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str = SMTP_USER,
        password: str = SMTP_PASSWORD,
        sender: str = MAIL_FROM,
        use_tls: bool = SMTP_USE_TLS,
        timeout: Optional[float] = SMTP_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.timeout is None:
            return smtplib.SMTP(self.host, self.port)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        with self._connect() as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    def send_welcome_email(self, email: str, name: str) -> bool:
        try:
            self.send(email, "Welcome to Task Manager!", welcome_body(name))
        except (smtplib.SMTPException, OSError):
            logger.exception("Error sending welcome email to %s", email)
            return False
        logger.info("Welcome email sent to %s", email)
        return True

    def send_task_reminder(self, email: str, name: str, task: Task, hours_left: int) -> bool:
        try:
            self.send(email, reminder_subject(task, hours_left), reminder_body(name, task, hours_left))
        except (smtplib.SMTPException, OSError):
            logger.exception("Error sending reminder for task %s to %s", task.id, email)
            return False
        logger.info(
            "Reminder email sent to %s for task: %s (%dh before due)",
            email,
            task.title,
            hours_left,
        )
        return True


@lru_cache(maxsize=1)
def get_mailer() -> Mailer:
    """Dependency returning the process-wide mailer."""
    return Mailer()
