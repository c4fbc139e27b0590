"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import welcome_email_template

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY

WELCOME_SUBJECT = "مرحباً بك في دنتال برو - Welcome to Dental Pro"


class EmailDeliveryError(Exception):
    """Raised when an email cannot be rendered or sent"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise EmailDeliveryError(f"Failed to compile MJML template: {str(e)}") from e

    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    # Newer releases return an object with .html / .errors
    if getattr(result, "errors", None):
        logger.warning(f"MJML compilation warnings: {result.errors}")
    return getattr(result, "html", str(result))


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailDeliveryError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise EmailDeliveryError(f"Failed to send email: {str(e)}") from e


async def send_welcome_email(
    to: str,
    first_name: Optional[str],
    confirmation_url: str,
    user_type: Optional[str] = None,
) -> dict:
    """Send the bilingual welcome / account activation email"""
    mjml_content = welcome_email_template(
        first_name=first_name or to.split("@")[0],
        user_type=user_type or "dentist",
        confirmation_url=confirmation_url,
    )
    return await send_email(to=to, subject=WELCOME_SUBJECT, mjml_content=mjml_content)
