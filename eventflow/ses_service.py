import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .config import AWS_ACCESS_KEY, AWS_SECRET_KEY, AWS_REGION, SES_SENDER_EMAIL

logger = logging.getLogger(__name__)

ses_client = boto3.client(
    "ses",
    aws_access_key_id=AWS_ACCESS_KEY,
    aws_secret_access_key=AWS_SECRET_KEY,
    region_name=AWS_REGION,
)

RESET_SUBJECT = "EventFlow - Recuperar contraseña"


class EmailDeliveryError(Exception):
    """Raised when SES refuses or fails to send a message."""


def send_email(to_address: str, subject: str, text_body: str, html_body: str = None) -> str:
    """
    Send a single email through Amazon SES.

    Args:
        to_address (str): The recipient.
        subject (str): Subject line.
        text_body (str): Plain-text body.
        html_body (str): Optional HTML alternative.

    Returns:
        str: The SES message id.
    """
    body = {"Text": {"Data": text_body, "Charset": "UTF-8"}}
    if html_body:
        body["Html"] = {"Data": html_body, "Charset": "UTF-8"}

    try:
        response = ses_client.send_email(
            Source=SES_SENDER_EMAIL,
            Destination={"ToAddresses": [to_address]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": body,
            },
        )
    except NoCredentialsError:
        raise EmailDeliveryError("Credentials not available")
    except (BotoCoreError, ClientError) as e:
        logger.error("Error sending email to %s: %s", to_address, e)
        raise EmailDeliveryError(f"Error sending email: {str(e)}")

    logger.info("Email sent to %s | MessageId: %s", to_address, response["MessageId"])
    return response["MessageId"]


def send_password_reset_email(to_address: str, reset_link: str) -> str:
    """Send the password recovery link to a registered user."""
    text_body = (
        "Hemos recibido una solicitud para restablecer tu contraseña.\n\n"
        f"Abre este enlace para elegir una nueva: {reset_link}\n\n"
        "Si no fuiste tú, ignora este mensaje."
    )
    html_body = (
        "<p>Hemos recibido una solicitud para restablecer tu contraseña.</p>"
        f'<p><a href="{reset_link}">Elegir una nueva contraseña</a></p>'
        "<p>Si no fuiste tú, ignora este mensaje.</p>"
    )
    return send_email(to_address, RESET_SUBJECT, text_body, html_body)
