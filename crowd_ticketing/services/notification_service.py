"""
Notification service for sending order and application emails.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import ApplicationStatus, Order, PartnershipApplication
from ..models.base import as_utc

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    ApplicationStatus.PENDING: "Pending",
    ApplicationStatus.UNDER_REVIEW: "Under Review",
    ApplicationStatus.APPROVED: "Approved",
    ApplicationStatus.REJECTED: "Rejected",
    ApplicationStatus.NEEDS_INFO: "Needs Info",
}


class NotificationService:
    """Service for handling email notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.settings = get_settings()

    async def send_order_confirmation(self, order_id: UUID) -> bool:
        """
        Send the order confirmation to the buyer.

        Args:
            order_id: ID of the confirmed order

        Returns:
            bool: True if email was sent successfully
        """
        order = await self.session.get(Order, order_id)
        if order is None:
            logger.error(f"Order {order_id} not found")
            return False

        event = order.event
        template_data = {
            "buyer_name": order.buyer_profile.get("name", ""),
            "event_title": event.title,
            "event_date": as_utc(event.start_date).strftime("%B %d, %Y at %I:%M %p UTC"),
            "venue": (event.location or {}).get("venue") or "Online",
            "order_number": order.order_number,
            "lines": [f"{item.quantity} x {item.name} @ {item.unit_price:.2f}" for item in order.items],
            "subtotal": f"{order.subtotal:.2f}",
            "fees": f"{order.fees:.2f}",
            "taxes": f"{order.taxes:.2f}",
            "total": f"{order.total:.2f} {order.currency}",
            "quantity": order.total_quantity,
        }

        success = await self._send_email(
            to_email=order.buyer_profile.get("email", ""),
            subject=f"Your tickets for {event.title} - Order {order.order_number}",
            text_content=self._render_order_confirmation_text(template_data),
            html_content=self._render_order_confirmation_html(template_data),
        )
        if success:
            logger.info(f"Order confirmation sent for order {order_id}")
        return success

    async def send_application_status(self, application_id: UUID) -> bool:
        """Tell an applicant that their partnership application changed status."""
        application = await self.session.get(PartnershipApplication, application_id)
        if application is None:
            logger.error(f"Application {application_id} not found")
            return False

        template_data = {
            "contact_name": application.contact_name,
            "application_type": application.application_type.value,
            "status": STATUS_LABELS[application.status],
            "notes": application.reviewer_notes,
            "terms": application.partnership_terms,
        }

        success = await self._send_email(
            to_email=application.contact_email,
            subject=f"Your {application.application_type.value} application is {template_data['status'].lower()}",
            text_content=self._render_application_status_text(template_data),
            html_content=self._render_application_status_html(template_data),
        )
        if success:
            logger.info(f"Application status email sent for application {application_id}")
        return success

    def _render_order_confirmation_text(self, data: Dict[str, Any]) -> str:
        lines = "\n".join(f"  {line}" for line in data["lines"])
        return (
            f"Hi {data['buyer_name']},\n\n"
            f"Thanks for your order {data['order_number']}.\n\n"
            f"{data['event_title']}\n"
            f"{data['event_date']}\n"
            f"{data['venue']}\n\n"
            f"Tickets ({data['quantity']}):\n{lines}\n\n"
            f"Subtotal: {data['subtotal']}\n"
            f"Fees: {data['fees']}\n"
            f"Taxes: {data['taxes']}\n"
            f"Total: {data['total']}\n\n"
            "Your electronic tickets are available in your account.\n"
        )

    def _render_order_confirmation_html(self, data: Dict[str, Any]) -> str:
        lines = "".join(f"<li>{line}</li>" for line in data["lines"])
        return (
            f"<h2>Order {data['order_number']}</h2>"
            f"<p>Hi {data['buyer_name']}, thanks for your order.</p>"
            f"<p><strong>{data['event_title']}</strong><br>{data['event_date']}<br>{data['venue']}</p>"
            f"<ul>{lines}</ul>"
            f"<p>Subtotal: {data['subtotal']}<br>Fees: {data['fees']}<br>Taxes: {data['taxes']}<br>"
            f"<strong>Total: {data['total']}</strong></p>"
        )

    def _render_application_status_text(self, data: Dict[str, Any]) -> str:
        text = (
            f"Hi {data['contact_name']},\n\n"
            f"Your {data['application_type']} partnership application is now: {data['status']}.\n"
        )
        if data["notes"]:
            text += f"\nNotes from our team:\n{data['notes']}\n"
        if data["terms"]:
            terms = data["terms"]
            text += (
                "\nPartnership terms:\n"
                f"  Commission rate: {terms.get('commission_rate', 0)}%\n"
                f"  Minimum revenue: {terms.get('minimum_revenue', 0)}\n"
                f"  Contract duration: {terms.get('contract_duration', 12)} months\n"
            )
        return text

    def _render_application_status_html(self, data: Dict[str, Any]) -> str:
        html = (
            f"<p>Hi {data['contact_name']},</p>"
            f"<p>Your {data['application_type']} partnership application is now "
            f"<strong>{data['status']}</strong>.</p>"
        )
        if data["notes"]:
            html += f"<p>{data['notes']}</p>"
        return html

    async def _send_email(self, to_email: str, subject: str, html_content: str, text_content: str) -> bool:
        """
        Send email using SMTP.

        Returns:
            bool: True if email was sent successfully
        """
        if not to_email:
            logger.warning("No recipient address, skipping email send")
            return False

        if not self.settings.smtp_server or not self.settings.smtp_username:
            logger.warning("Email configuration not available, skipping email send")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.mail_from
        msg["To"] = to_email
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        try:
            with smtplib.SMTP(self.settings.smtp_server, self.settings.smtp_port) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                server.login(self.settings.smtp_username, self.settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent successfully to {to_email}")
        return True
