import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from urllib.parse import quote
from twilio.rest import Client
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# --- Email Configuration ---
SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_SENDER = os.getenv("EMAIL_SENDER")

# --- Twilio Configuration ---
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")


def send_email(to_email: str, subject: str, body_html: str, body_text: Optional[str] = None):
    """Sends an email using SMTP."""
    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, EMAIL_SENDER]):
        logger.warning("SMTP settings are not fully configured. Skipping email.")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = EMAIL_SENDER
    message["To"] = to_email
    if body_text:
        message.attach(MIMEText(body_text, "plain"))
    message.attach(MIMEText(body_html, "html"))

    try:
        # Port 465 expects TLS from the first byte, everything else upgrades with STARTTLS
        if SMTP_PORT == 465:
            with smtplib.SMTP_SSL(SMTP_SERVER, SMTP_PORT) as server:
                server.login(SMTP_USER, SMTP_PASSWORD)
                server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        else:
            with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
                server.starttls()
                server.login(SMTP_USER, SMTP_PASSWORD)
                server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        logger.info(f"Email sent successfully to {to_email}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def send_sms(to_phone_number: str, body: str):
    """Sends an SMS using Twilio."""
    if not all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER]):
        logger.warning("Twilio settings are not fully configured. Skipping SMS.")
        return False

    try:
        client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        message = client.messages.create(
            body=body,
            from_=TWILIO_PHONE_NUMBER,
            to=to_phone_number
        )
        logger.info(f"SMS sent successfully to {to_phone_number}, SID: {message.sid}")
        return True
    except Exception as e:
        logger.error(f"Failed to send SMS to {to_phone_number}: {e}")
        return False


def build_payment_link(frontend_url: str, order_id) -> str:
    return f"{frontend_url.rstrip('/')}/checkout/{quote(str(order_id), safe='')}"


def format_amount(amount_minor: int) -> str:
    return f"${amount_minor / 100:.2f} USD"


# Email Templates
def get_payment_link_email(order_data: dict) -> tuple[str, str, str]:
    """Generate the payment link email as (subject, html, text)"""
    order_id = str(order_data["id"])
    greeting = f"Hi {order_data['buyer_name']}," if order_data.get("buyer_name") else "Hello,"
    amount = format_amount(order_data["total_amount"])
    payment_link = order_data["payment_link"]

    subject = f"Payment Required - Order #{order_id[:8]}"

    body = f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto;">
        <h2>Complete Your Payment</h2>
        <p>{greeting}</p>
        <p>Your order has been created! Please complete your payment to proceed with your purchase.</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <p><strong>Order ID:</strong> {order_id}</p>
            <p><strong>Total Amount:</strong> {amount}</p>
        </div>

        <p style="text-align: center; margin: 30px 0;">
            <a href="{payment_link}" style="background-color: #667eea; color: white; padding: 15px 40px; text-decoration: none; border-radius: 25px;">Pay Now</a>
        </p>

        <p>If you didn't request this, please ignore this email.</p>
        <p style="font-size: 12px; color: #999;">Payments are processed securely by Stripe. We never store your full card details.</p>
    </body>
    </html>
    """

    text = (
        f"{greeting}\n\n"
        "Your order has been created! Please complete your payment to proceed with your purchase.\n\n"
        f"Order ID: {order_id}\n"
        f"Total Amount: {amount}\n\n"
        f"Payment Link:\n{payment_link}\n\n"
        "If you didn't request this, please ignore this email.\n"
    )

    return subject, body, text


# SMS Templates
def get_payment_link_sms(order_data: dict) -> str:
    return (
        f"Order #{str(order_data['id'])[:8]} is ready: {format_amount(order_data['total_amount'])}. "
        f"Pay here: {order_data['payment_link']}"
    )


def dispatch_payment_link(order_data: dict) -> None:
    """
    Send the payment link to the buyer by email, and by SMS when a phone number was given.
    Failures are logged and swallowed; the order already exists at this point.
    """
    try:
        subject, body_html, body_text = get_payment_link_email(order_data)
        send_email(order_data["buyer_email"], subject, body_html, body_text)

        if order_data.get("buyer_phone"):
            send_sms(order_data["buyer_phone"], get_payment_link_sms(order_data))
    except Exception as e:
        logger.error(f"Failed to send payment link for order {order_data.get('id')}: {e}")
