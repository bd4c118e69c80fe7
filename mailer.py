import logging
import smtplib
from email.message import EmailMessage
from socket import gaierror, timeout

from config_models import EmailConfig

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Exception raised for email sending errors."""

    pass


def send_html_email(
    config: EmailConfig,
    recipient: str,
    subject: str,
    html_body: str,
    text_body: str = "",
) -> bool:
    """Send an HTML email through the configured SMTP server.

    Args:
        config: Email configuration.
        recipient: Email recipient address.
        subject: Email subject.
        html_body: HTML content of the message.
        text_body: Plain-text alternative (optional).

    Returns:
        True if email was sent successfully.

    Raises:
        MailerError: If email sending fails or times out.
    """
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config.sender
    message["To"] = recipient
    message.set_content(text_body or subject)
    message.add_alternative(html_body, subtype="html")

    try:
        logger.info(f"Sending email to {recipient} with subject: {subject}")
        with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=config.timeout) as server:
            server.starttls()
            if config.smtp_user:
                server.login(config.smtp_user, config.smtp_password)
            server.send_message(message)
        logger.info(f"Email sent successfully to {recipient}")
        return True

    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {e}")
        raise MailerError(f"Email authentication failed: {e}")

    except smtplib.SMTPRecipientsRefused as e:
        logger.error(f"Recipients refused: {e}")
        raise MailerError(f"Email recipients refused: {e}")

    except smtplib.SMTPException as e:
        logger.error(f"SMTP error: {e}")
        raise MailerError(f"Failed to send email: {e}")

    except (gaierror, timeout) as e:
        logger.error(f"Network error while sending email: {e}")
        raise MailerError(f"Network error: could not connect to mail server: {e}")

    except OSError as e:
        logger.error(f"OS error while sending email: {e}")
        raise MailerError(f"Failed to send email: {e}")
