import smtplib
import socket
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from email_validator import validate_email, EmailNotValidError

from shared import shared_settings
from shared.emails.identity_templates.email_templates import (
    email_security_alert_template,
    email_verification_template,
    password_changed_successfully_template,
    password_reset_verification_template,
)
from shared.utils.logger import TsLogger

# Initialize logger at module level
logger = TsLogger(__name__)


class EmailRecipient(Protocol):
    name: str
    email: str


class Email:
    def __init__(self, user: EmailRecipient):
        self.user = user

    def _send_email(self, subject: str, body: str) -> bool:
        required_settings = [
            shared_settings.SMTP_EMAIL,
            shared_settings.SMTP_PASSWORD,
            shared_settings.SMTP_SERVER,
            shared_settings.SMTP_PORT
        ]

        if not all(required_settings):
            logger.error("Missing required SMTP configuration settings")
            return False

        # Validate email address
        try:
            socket.setdefaulttimeout(5)
            valid = validate_email(str(self.user.email), check_deliverability=True)
            to_email = valid.normalized
        except EmailNotValidError as e:
            logger.error(f"Invalid email address {self.user.email}: {str(e)}")
            return False
        except socket.timeout:
            logger.warning(f"DNS timeout for {self.user.email}, proceeding without deliverability check")
            valid = validate_email(str(self.user.email), check_deliverability=False)
            to_email = valid.normalized

        msg = MIMEMultipart()
        msg["From"] = shared_settings.SMTP_EMAIL
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "html"))

        try:
            port = int(str(shared_settings.SMTP_PORT).strip())
            logger.debug(f"Connecting to SMTP server {shared_settings.SMTP_SERVER}:{port}")
            with smtplib.SMTP_SSL(shared_settings.SMTP_SERVER, port, timeout=60) as server:
                server.login(shared_settings.SMTP_EMAIL, shared_settings.SMTP_PASSWORD)
                server.sendmail(shared_settings.SMTP_EMAIL, to_email, msg.as_string())
            logger.info(f"Email sent successfully to {to_email}")
            return True
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error sending email to {self.user.email}: {str(e)}")
            return False
        except OSError as e:
            logger.error(f"Network error sending email to {self.user.email}: {str(e)}")
            return False

    def send_verification_email(self, verification_link: str) -> bool:  # Registration - confirmation email
        return self._send_email(
            subject=f"{shared_settings.APP_NAME} - Verify your email",
            body=email_verification_template(self.user.name, verification_link)
        )

    def send_password_reset_email(self, reset_link: str) -> bool:
        return self._send_email(
            subject=f"{shared_settings.APP_NAME} - Password Reset",
            body=password_reset_verification_template(self.user.name, reset_link)
        )

    def send_password_changed_email(self) -> bool:
        return self._send_email(
            subject=f"{shared_settings.APP_NAME} - Your password has been changed",
            body=password_changed_successfully_template(self.user.name)
        )

    def send_security_alert_email(self) -> bool:
        return self._send_email(
            subject=f"{shared_settings.APP_NAME} - Security Alert: Suspicious Activity on Your Account",
            body=email_security_alert_template(self.user.name)
        )
