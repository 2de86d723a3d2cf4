import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from core.config import settings
from utils.logger import get_logger

logger = get_logger(__name__)


def send_email(to_email: str, subject: str, body: str):
    """
    Deliver an HTML e-mail over SMTP. Runs as a background task after the
    response is sent; delivery failures are logged and re-raised.
    """
    if settings.ENV == "testing":
        logger.info("[TEST MODE] Email skipped", extra={"recipient": to_email, "subject": subject})
        return

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = settings.MAIL_FROM
    message["To"] = to_email
    message.attach(MIMEText(body, "html"))

    try:
        with smtplib.SMTP(settings.MAIL_SERVER, settings.MAIL_PORT, timeout=10) as server:
            server.starttls()
            if settings.MAIL_USERNAME:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
            server.sendmail(settings.MAIL_FROM, to_email, message.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(
            "Failed to send email",
            extra={"recipient": to_email, "subject": subject, "error_type": type(e).__name__},
            exc_info=True
        )
        raise

    logger.info("Email sent", extra={"recipient": to_email, "subject": subject})
