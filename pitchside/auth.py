"""
Authentication module for Pitchside
Handles coach sessions, one-time sign-in codes and outgoing email
"""

import os
import secrets
import smtplib
from datetime import datetime, timedelta
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from flask import current_app
from flask_login import UserMixin

from .config import OTP_LENGTH, OTP_EXPIRY_MINUTES, APP_BASE_URL, smtp_enabled
from .models import Coach, ClubInvite
from .utils import TIMESTAMP_FORMAT


class UserSession(UserMixin):
    """Coach session class for Flask-Login"""
    def __init__(self, coach: Coach):
        self.id = coach.id
        self.email = coach.email
        self.name = coach.name
        self._coach = coach

    def get_coach(self) -> Coach:
        """Get the underlying Coach model"""
        return self._coach


def generate_otp_code(length: int = OTP_LENGTH) -> str:
    """Numeric sign-in code"""
    return ''.join(secrets.choice('0123456789') for _ in range(length))


def otp_expiry(now: Optional[datetime] = None) -> str:
    return ((now or datetime.now()) + timedelta(minutes=OTP_EXPIRY_MINUTES)).strftime(TIMESTAMP_FORMAT)


def send_email(to_address: str, subject: str, body: str) -> bool:
    """Send a plain text email over SMTP.

    Returns False when SMTP is disabled or not configured; callers log the
    content instead. SMTP failures are logged and reported as False.
    """
    if not smtp_enabled():
        return False

    smtp_host = os.environ.get('SMTP_HOST', 'smtp.gmail.com')
    smtp_port = int(os.environ.get('SMTP_PORT', '587'))
    smtp_user = os.environ.get('SMTP_USER', '').strip()
    smtp_password = os.environ.get('SMTP_PASSWORD', '').strip()
    if not smtp_user or not smtp_password:
        current_app.logger.warning("SMTP credentials not configured, skipping email")
        return False

    msg = MIMEMultipart()
    msg['From'] = os.environ.get('MAIL_FROM', smtp_user)
    msg['To'] = to_address
    msg['Subject'] = subject
    msg.attach(MIMEText(body, 'plain'))

    try:
        with smtplib.SMTP(smtp_host, smtp_port) as server:
            server.starttls()
            server.login(smtp_user, smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.error(f"Failed to send email to {to_address}: {e}", exc_info=True)
        return False

    current_app.logger.info(f"Email '{subject}' sent to {to_address}")
    return True


def send_otp_email(email: str, code: str) -> bool:
    body = f"""
Your Pitchside sign-in code is: {code}

The code expires in {OTP_EXPIRY_MINUTES} minutes. If you did not try to sign in, you can ignore this email.

Pitchside
    """
    sent = send_email(email, "Your Pitchside sign-in code", body)
    if not sent:
        # Email not configured - log the code so a developer can sign in
        current_app.logger.info(f"SIGN-IN CODE for {email}: {code} (expires in {OTP_EXPIRY_MINUTES} minutes)")
    return sent


def invite_url(invite: ClubInvite) -> str:
    return f"{APP_BASE_URL}/invite/{invite.token}"


def send_invite_email(invite: ClubInvite, club_name: str, inviter_name: Optional[str] = None) -> bool:
    url = invite_url(invite)
    body = f"""
Hello,

{inviter_name or 'A coach'} has invited you to join {club_name} on Pitchside.

Accept the invite here:
{url}

Pitchside
    """
    sent = send_email(invite.email, f"You're invited to join {club_name} on Pitchside", body)
    if not sent:
        current_app.logger.info(f"INVITE for {invite.email} to {club_name}: {url}")
    return sent
