from shared.emails.email_components import base_email_template


def email_verification_template(name: str, verification_link: str) -> str:
    """Generate an email verification template."""
    content = """
    <p>Hi <strong>{{ name }}</strong>,</p>
    <p>Thank you for signing up! To verify your email address, please click the button below:</p>
    <p style="text-align:center;">
        <a href="{{ link }}" class="button" target="_blank" rel="noopener noreferrer">Verify Email</a>
    </p>
    <p>If you didn't create an account, please ignore this email.</p>
    """
    return base_email_template("Email Verification", content, name=name, link=verification_link)


def password_reset_verification_template(name: str, reset_link: str) -> str:
    """Generate a password reset template with a link to the reset page."""
    content = """
    <p>Hi <strong>{{ name }}</strong>,</p>
    <p>We received a request to reset your password. Click the button below to proceed:</p>
    <p style="text-align:center;">
        <a href="{{ link }}" class="button" target="_blank" rel="noopener noreferrer">Reset Password</a>
    </p>
    <p>For your security, do not share this link with anyone.</p>
    <p>If you didn't request this password reset, you can safely ignore this email.</p>
    """
    return base_email_template("Password Reset Request", content, name=name, link=reset_link)


def password_changed_successfully_template(name: str) -> str:
    """Generate a password changed confirmation template."""
    content = """
    <p>Hi <strong>{{ name }}</strong>,</p>
    <p>We're writing to let you know that your account password was successfully changed.</p>
    <div class="highlight-box">
        If you didn't make this change, please reset your password immediately and contact our support team.
    </div>
    """
    return base_email_template("Password Changed Successfully", content, name=name)


def email_security_alert_template(name: str) -> str:
    """Generate a security alert template sent when a revoked session is replayed."""
    content = """
    <p>Hi <strong>{{ name }}</strong>,</p>
    <p>We detected an attempt to reuse a session that had already been closed on your account.</p>
    <div class="highlight-box">
        As a precaution we signed you out of every device. Please log in again and change your password
        if you don't recognize this activity.
    </div>
    """
    return base_email_template("Security Alert", content, name=name)
