import logging
from typing import List

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from pydantic import EmailStr

from app.core.config import settings
from app.models.product import Product

logger = logging.getLogger(__name__)


def mail_enabled() -> bool:
    return bool(settings.MAIL_SERVER and settings.MAIL_FROM)


def get_mail_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME or "",
        MAIL_PASSWORD=settings.MAIL_PASSWORD or "",
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(settings.MAIL_USERNAME),
        VALIDATE_CERTS=True
    )


def render_low_stock_html(business_name: str, products: List[Product]) -> str:
    rows = "".join(
        f"<tr><td>{p.name}</td><td>{p.sku or '-'}</td>"
        f"<td style='text-align:right'>{p.stock:g}</td>"
        f"<td style='text-align:right'>{p.min_stock:g}</td></tr>"
        for p in products
    )
    return f"""
    <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <div style="background-color: #f4f4f4; padding: 20px;">
                <div style="background-color: white; padding: 20px; border-radius: 8px; max-width: 600px; margin: auto;">
                    <h2 style="color: #d9534f;">Low stock at {business_name}</h2>
                    <p>The following products are at or below their minimum stock level:</p>
                    <table style="width: 100%; border-collapse: collapse;">
                        <tr><th align="left">Product</th><th align="left">SKU</th><th>Stock</th><th>Min</th></tr>
                        {rows}
                    </table>
                </div>
            </div>
        </body>
    </html>
    """


async def send_low_stock_alert(email_to: EmailStr, business_name: str, products: List[Product]) -> bool:
    """
    Emails the owner a table of low-stock products.
    Runs as a background task, so failures are logged rather than raised.
    """
    if not mail_enabled():
        logger.info("Mail not configured; skipping low-stock alert for %s", business_name)
        return False

    message = MessageSchema(
        subject=f"Low stock alert: {business_name}",
        recipients=[email_to],
        body=render_low_stock_html(business_name, products),
        subtype=MessageType.html
    )

    try:
        await FastMail(get_mail_config()).send_message(message)
    except Exception:
        logger.exception("Failed to send low-stock alert to %s", email_to)
        return False

    logger.info("Low-stock alert sent to %s (%d products)", email_to, len(products))
    return True
