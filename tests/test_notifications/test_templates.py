"""
Tests for message templates and formatting.
"""

from datetime import date

from notifications.models import ReminderPayload
from notifications.templates import (
    TemplateType,
    format_amount,
    format_due_date,
    get_template,
    render_reminder,
    render_test_message,
    sample_reminder_payload,
)


class TestFormatting:

    def test_format_due_date(self):
        assert format_due_date(date(2025, 3, 3)) == "Monday, March 3, 2025"

    def test_format_amount(self):
        assert format_amount(1299) == "$1,299.00"
        assert format_amount(9.99) == "$9.99"


class TestReminderTemplate:
    """Tests for the payment reminder message."""

    def test_render_reminder(self):
        payload = ReminderPayload(subscription_name="Netflix", due_date=date(2025, 3, 3), amount=15.49)

        message = render_reminder(payload)

        assert message.title == "SubTrackr: Netflix payment due soon"
        assert message.body == "Your Netflix subscription payment of $15.49 is due on Monday, March 3, 2025."
        assert message.subject == "Reminder: Netflix payment due soon"
        assert "Monday, March 3, 2025" in message.text
        assert "<strong>Netflix</strong>" in message.html
        assert message.tag == "subscription-reminder"
        assert message.sound == "pushover"

    def test_reminder_data_keeps_raw_fields(self):
        """Test that the push data carries unformatted values."""
        payload = ReminderPayload(subscription_name="Netflix", due_date=date(2025, 3, 3), amount=15.49)

        data = render_reminder(payload).data

        assert data == {"subscriptionName": "Netflix", "dueDate": "2025-03-03", "amount": 15.49}


class TestTestTemplate:

    def test_render_test_message(self):
        message = render_test_message()

        assert message.title == "SubTrackr Test Notification"
        assert message.body == "This is a test notification from SubTrackr."
        assert message.subject == "SubTrackr Test Notification"
        assert message.tag == "test-notification"

    def test_sample_reminder_is_due_tomorrow(self):
        payload = sample_reminder_payload(today=date(2025, 2, 28))

        assert payload.subscription_name == "Test Subscription"
        assert payload.due_date == date(2025, 3, 1)
        assert payload.amount == 9.99

    def test_get_template(self):
        assert get_template(TemplateType.TEST).template_type == TemplateType.TEST
