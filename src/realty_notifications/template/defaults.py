"""Built-in template set, loaded before any directory templates."""

from __future__ import annotations

from ..delivery import NotificationChannel
from ..models import NotificationType
from ..ports.renderer import NotificationTemplate

_EMAIL = NotificationChannel.EMAIL
_SMS = NotificationChannel.SMS
_PUSH = NotificationChannel.PUSH

_BUTTON_STYLE = (
    "background-color: #3498db; color: #ffffff; padding: 10px 20px; "
    "text-decoration: none; border-radius: 4px;"
)


def _email_body(heading: str, *paragraphs: str, link: tuple[str, str] | None = None) -> str:
    lines = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
        f'  <h2 style="color: #2c3e50;">{heading}</h2>',
    ]
    lines.extend(f"  <p>{p}</p>" for p in paragraphs)
    if link is not None:
        url, label = link
        lines.append(f'  <p><a href="{url}" style="{_BUTTON_STYLE}">{label}</a></p>')
    lines.append('  <p style="font-size: 12px; color: #888888;">{{appName}}</p>')
    lines.append("</div>")
    return "\n".join(lines)


DEFAULT_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        id="welcome-email",
        name="Welcome Email",
        type=NotificationType.WELCOME,
        channel=_EMAIL,
        subject="Welcome to {{appName}}!",
        body=_email_body(
            "Welcome, {{userName}}!",
            "Thank you for joining {{appName}}. You can now save searches, "
            "follow properties and contact agents directly.",
            link=("{{loginUrl}}", "Sign in"),
        ),
        variables=("userName", "appName", "loginUrl"),
    ),
    NotificationTemplate(
        id="account-verification-email",
        name="Account Verification Email",
        type=NotificationType.ACCOUNT_VERIFICATION,
        channel=_EMAIL,
        subject="Verify your {{appName}} account",
        body=_email_body(
            "Confirm your email address",
            "Hi {{firstName}}, please confirm your email address to activate your account.",
            "This link expires in {{expiresIn}}.",
            link=("{{verificationUrl}}", "Verify email"),
        ),
        variables=("verificationUrl",),
    ),
    NotificationTemplate(
        id="account-verified-email",
        name="Account Verified Email",
        type=NotificationType.ACCOUNT_VERIFIED,
        channel=_EMAIL,
        subject="Your {{appName}} account is verified",
        body=_email_body(
            "You're all set, {{userName}}",
            "Your email address has been verified.",
            link=("{{dashboardUrl}}", "Go to dashboard"),
        ),
        variables=("userName", "dashboardUrl"),
    ),
    NotificationTemplate(
        id="password-reset-email",
        name="Password Reset Email",
        type=NotificationType.PASSWORD_RESET,
        channel=_EMAIL,
        subject="Reset your {{appName}} password",
        body=_email_body(
            "Password reset requested",
            "We received a request to reset the password for {{email}}.",
            "If you did not ask for this you can ignore this email. "
            "The link expires in {{expiresIn}}.",
            link=("{{resetUrl}}", "Reset password"),
        ),
        variables=("resetUrl",),
    ),
    NotificationTemplate(
        id="inquiry-notification-email",
        name="Property Inquiry Email",
        type=NotificationType.PROPERTY_INQUIRY,
        channel=_EMAIL,
        subject="New inquiry for {{propertyTitle}}",
        body=_email_body(
            "New inquiry for {{propertyTitle}}",
            "<strong>From:</strong> {{inquirerName}} ({{inquirerEmail}}) {{inquirerPhone}}",
            "<strong>Message:</strong><br>{{inquiryMessage}}",
            link=("{{inquiryUrl}}", "View inquiry"),
        ),
        variables=("propertyTitle", "inquirerName", "inquirerEmail", "inquiryMessage"),
    ),
    NotificationTemplate(
        id="inquiry-notification-sms",
        name="Property Inquiry SMS",
        type=NotificationType.PROPERTY_INQUIRY,
        channel=_SMS,
        body="New inquiry for {{propertyTitle}} from {{inquirerName}}. View details: {{inquiryUrl}}",
        variables=("propertyTitle", "inquirerName"),
    ),
    NotificationTemplate(
        id="inquiry-notification-push",
        name="Property Inquiry Push",
        type=NotificationType.PROPERTY_INQUIRY,
        channel=_PUSH,
        subject="New Property Inquiry",
        body="{{inquirerName}} is interested in {{propertyTitle}}",
        variables=("propertyTitle", "inquirerName"),
    ),
    NotificationTemplate(
        id="appointment-confirmation-email",
        name="Appointment Confirmation Email",
        type=NotificationType.APPOINTMENT_SCHEDULED,
        channel=_EMAIL,
        subject="Appointment confirmed for {{propertyTitle}}",
        body=_email_body(
            "Your viewing is booked",
            "<strong>Property:</strong> {{propertyTitle}}<br>"
            "<strong>Address:</strong> {{propertyAddress}}",
            "<strong>When:</strong> {{appointmentDate}} at {{appointmentTime}}",
            "<strong>Agent:</strong> {{agentName}}",
            link=("{{appointmentUrl}}", "View appointment"),
        ),
        variables=("propertyTitle", "appointmentDate", "appointmentTime"),
    ),
    NotificationTemplate(
        id="appointment-scheduled-sms",
        name="Appointment Scheduled SMS",
        type=NotificationType.APPOINTMENT_SCHEDULED,
        channel=_SMS,
        body="Viewing booked: {{propertyTitle}} on {{appointmentDate}} at {{appointmentTime}}.",
        variables=("propertyTitle", "appointmentDate", "appointmentTime"),
    ),
    NotificationTemplate(
        id="appointment-reminder-sms",
        name="Appointment Reminder SMS",
        type=NotificationType.APPOINTMENT_REMINDER,
        channel=_SMS,
        body="Reminder: your viewing of {{propertyTitle}} is in {{timeUntil}}. "
        "Agent: {{agentName}}",
        variables=("propertyTitle", "timeUntil"),
    ),
    NotificationTemplate(
        id="appointment-reminder-push",
        name="Appointment Reminder Push",
        type=NotificationType.APPOINTMENT_REMINDER,
        channel=_PUSH,
        subject="Upcoming appointment",
        body="Your viewing of {{propertyTitle}} is in {{timeUntil}}",
        variables=("propertyTitle", "timeUntil"),
    ),
    NotificationTemplate(
        id="price-alert-sms",
        name="Price Alert SMS",
        type=NotificationType.PRICE_CHANGE,
        channel=_SMS,
        body="Price Alert: {{propertyTitle}} price {{changeType}} to ${{newPrice}}. "
        "View: {{propertyUrl}}",
        variables=("propertyTitle", "changeType", "newPrice"),
    ),
    NotificationTemplate(
        id="property-approved-email",
        name="Property Approved Email",
        type=NotificationType.PROPERTY_APPROVED,
        channel=_EMAIL,
        subject="Your listing {{propertyTitle}} is live",
        body=_email_body(
            "Listing approved",
            "Good news {{userName}}, {{propertyTitle}} has been approved and is now visible.",
            link=("{{propertyUrl}}", "View listing"),
        ),
        variables=("userName", "propertyTitle"),
    ),
    NotificationTemplate(
        id="property-rejected-email",
        name="Property Rejected Email",
        type=NotificationType.PROPERTY_REJECTED,
        channel=_EMAIL,
        subject="Your listing {{propertyTitle}} needs changes",
        body=_email_body(
            "Listing not approved",
            "Hi {{userName}}, {{propertyTitle}} could not be approved.",
            "<strong>Reason:</strong> {{reason}}",
        ),
        variables=("userName", "propertyTitle", "reason"),
    ),
)
