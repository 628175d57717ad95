"""
Notification message templates.

Templates support variable substitution using Python's string formatting.
Each template has an email variant (subject, plain text, HTML) and a push
variant (title, body) shared by Pushbullet, Pushover and Web Push.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from notifications.models import ReminderPayload, RenderedMessage


class TemplateType(str, Enum):
    """Supported notification templates."""
    SUBSCRIPTION_REMINDER = "subscription_reminder"
    TEST = "test"


@dataclass
class NotificationTemplate:
    """A notification template with email and push variants."""
    template_type: TemplateType
    email_subject: str
    email_text: str
    email_html: str
    push_title: str
    push_body: str
    tag: Optional[str] = None

    def render(self, **kwargs) -> RenderedMessage:
        """Render both variants with provided variables."""
        subject, text, html = self.render_email(**kwargs)
        return RenderedMessage(
            title=self.push_title.format(**kwargs),
            body=self.push_body.format(**kwargs),
            subject=subject,
            text=text,
            html=html,
            tag=self.tag,
        )

    def render_email(self, **kwargs) -> tuple[str, str, str]:
        """
        Render the email variant.

        Returns:
            Tuple of (subject, text, html)
        """
        return (
            self.email_subject.format(**kwargs),
            self.email_text.format(**kwargs),
            self.email_html.format(**kwargs),
        )


# =============================================================================
# Template Definitions
# =============================================================================

TEMPLATES: dict[TemplateType, NotificationTemplate] = {

    TemplateType.SUBSCRIPTION_REMINDER: NotificationTemplate(
        template_type=TemplateType.SUBSCRIPTION_REMINDER,
        email_subject="Reminder: {subscription_name} payment due soon",
        email_text="""Hello,

This is a reminder that your {subscription_name} subscription payment of {amount} is due on {due_date}.

To view more details or update this subscription, please visit your SubTrackr dashboard.

Best regards,
The SubTrackr Team
""",
        email_html="""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">Subscription Payment Reminder</h2>
  <p>Hello,</p>
  <p>This is a reminder that your <strong>{subscription_name}</strong> subscription payment is due soon.</p>
  <div style="background-color: #f8fafc; border: 1px solid #e2e8f0; border-radius: 4px; padding: 16px; margin: 20px 0;">
    <p><strong>Subscription:</strong> {subscription_name}</p>
    <p><strong>Amount:</strong> {amount}</p>
    <p><strong>Due Date:</strong> {due_date}</p>
  </div>
  <p>To view more details or update this subscription, please visit your SubTrackr dashboard.</p>
  <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e2e8f0; color: #64748b; font-size: 12px;">
    <p>Best regards,<br>The SubTrackr Team</p>
  </div>
</div>
""",
        push_title="SubTrackr: {subscription_name} payment due soon",
        push_body="Your {subscription_name} subscription payment of {amount} is due on {due_date}.",
        tag="subscription-reminder",
    ),

    TemplateType.TEST: NotificationTemplate(
        template_type=TemplateType.TEST,
        email_subject="SubTrackr Test Notification",
        email_text="This is a test notification from SubTrackr.",
        email_html="<p>This is a test notification from <strong>SubTrackr</strong>.</p>",
        push_title="SubTrackr Test Notification",
        push_body="This is a test notification from SubTrackr.",
        tag="test-notification",
    ),
}


# =============================================================================
# Formatting helpers
# =============================================================================

def format_due_date(due_date: date) -> str:
    """Format a due date as e.g. 'Monday, March 3, 2025'."""
    return f"{due_date:%A}, {due_date:%B} {due_date.day}, {due_date.year}"


def format_amount(amount: float) -> str:
    """Format an amount in US dollars, e.g. '$1,299.00'."""
    return f"${amount:,.2f}"


def get_template(template_type: TemplateType) -> NotificationTemplate:
    """Get a template by type."""
    return TEMPLATES[template_type]


def render_reminder(payload: ReminderPayload) -> RenderedMessage:
    """
    Render a payment reminder for every channel.

    ``data`` carries the raw reminder fields that Web Push hands to the
    browser's service worker.
    """
    template = get_template(TemplateType.SUBSCRIPTION_REMINDER)
    message = template.render(
        subscription_name=payload.subscription_name,
        amount=format_amount(payload.amount),
        due_date=format_due_date(payload.due_date),
    )
    message.sound = "pushover"
    message.data = {
        "subscriptionName": payload.subscription_name,
        "dueDate": payload.due_date.isoformat(),
        "amount": payload.amount,
    }
    return message


def render_test_message() -> RenderedMessage:
    """Render the synthetic test notification."""
    return get_template(TemplateType.TEST).render()


def sample_reminder_payload(today: Optional[date] = None) -> ReminderPayload:
    """A made-up reminder due tomorrow, used to exercise Web Push end to end."""
    today = today or date.today()
    return ReminderPayload(
        subscription_name="Test Subscription",
        due_date=today + timedelta(days=1),
        amount=9.99,
    )
