"""SMTP email provider."""

from __future__ import annotations

import email.message
import email.policy
import email.utils
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..channel import RecipientInfo
from ..delivery import (
    AttachmentVO,
    DeliveryRecord,
    NotificationChannel,
    RenderedNotification,
    html_to_text,
    looks_like_html,
)
from ..ports.sender import IChannelProvider
from ..template.engines.layout import EmailLayoutRenderer
from ..template.registry import TemplateRegistry

logger = logging.getLogger(__name__)


class SmtpEmailProvider(IChannelProvider):
    """
    Async SMTP email provider using aiosmtplib.

    Ready once a host is configured. ``verify()`` is called at startup; if
    the server cannot be reached or rejects the credentials the provider
    stays not-ready until the process restarts.
    """

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        from_email: str = "noreply@realestate.com",
        registry: TemplateRegistry | None = None,
        layout: EmailLayoutRenderer | None = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.from_email = from_email
        self._registry = registry
        self._layout = layout
        self._verification_failed = False

    def is_ready(self) -> bool:
        return bool(self.host) and not self._verification_failed

    async def verify(self) -> bool:
        """Open and close one SMTP session to check host and credentials."""
        if not self.host:
            logger.info("SMTP host not configured, email channel disabled")
            return False
        aiosmtplib = _import_aiosmtplib()
        try:
            async with aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                timeout=self.timeout,
                start_tls=self.use_tls,
            ) as smtp:
                if self.username and self.password:
                    await smtp.login(self.username, self.password)
                await smtp.noop()
        except Exception as e:
            self._verification_failed = True
            logger.error(
                f"SMTP verification against {self.host}:{self.port} failed, "
                f"email channel disabled until restart: {e}"
            )
            return False
        logger.info(f"SMTP transport {self.host}:{self.port} verified")
        return True

    async def send_email(
        self,
        to: str,
        *,
        subject: str | None = None,
        body: str | None = None,
        template: str | None = None,
        template_data: Mapping[str, Any] | None = None,
        attachments: Sequence[AttachmentVO] = (),
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        """
        Send a standalone email, rendering ``template`` when one is named.

        Raises:
            TemplateNotFoundError: ``template`` is unknown or inactive.
            MissingVariablesError: ``template_data`` lacks declared variables.
        """
        if template is not None:
            if self._registry is None:
                raise ValueError("A template registry is required to send templated email")
            compiled = self._registry.render(template, template_data or {})
            subject, body = compiled.subject or subject, compiled.content
        if body is None:
            raise ValueError("Either body or template must be given")
        content = RenderedNotification(
            body_text=body,
            subject=subject,
            attachments=list(attachments),
        )
        return await self.send(RecipientInfo(user_id=to, email=to), content, metadata)

    async def send(
        self,
        recipient: RecipientInfo,
        content: RenderedNotification,
        metadata: Mapping[str, object] | None = None,
    ) -> DeliveryRecord:
        address = recipient.email
        if not address:
            return DeliveryRecord.failed(
                recipient.user_id, self.channel, error="Recipient has no email address"
            )
        if not self.is_ready():
            return DeliveryRecord.failed(address, self.channel, error="SMTP not configured")

        aiosmtplib = _import_aiosmtplib()
        meta = metadata or {}
        from_addr = str(meta.get("from_email") or self.from_email)

        try:
            message = self._build_message(address, from_addr, content, meta)
            async with aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                timeout=self.timeout,
                start_tls=self.use_tls,
            ) as smtp:
                if self.username and self.password:
                    await smtp.login(self.username, self.password)

                await smtp.send_message(message)

            logger.info(f"Email sent to {address} via SMTP")
            return DeliveryRecord.sent(address, self.channel, provider_id=message["Message-ID"])

        except Exception as e:
            logger.error(f"Failed to send email to {address}: {str(e)}")
            return DeliveryRecord.failed(address, self.channel, error=str(e))

    def _build_message(
        self,
        address: str,
        from_addr: str,
        content: RenderedNotification,
        meta: Mapping[str, object],
    ) -> email.message.EmailMessage:
        text, html = content.body_text, content.body_html
        if html is None and looks_like_html(text):
            text, html = html_to_text(text), text
        elif html is None and self._layout is not None:
            html = self._layout.render(
                title=content.subject or "",
                message=text,
                action_url=_optional_str(meta.get("action_url")),
            )

        message = email.message.EmailMessage(policy=email.policy.default)
        message["To"] = address
        message["From"] = from_addr
        if content.subject:
            message["Subject"] = content.subject
        message["Message-ID"] = email.utils.make_msgid(domain=from_addr.rpartition("@")[2] or None)
        if meta.get("notification_id"):
            message["X-Notification-ID"] = str(meta["notification_id"])
        if meta.get("notification_type"):
            message["X-Notification-Type"] = str(meta["notification_type"])

        message.set_content(text, subtype="plain", charset="utf-8")
        if html:
            message.add_alternative(html, subtype="html", charset="utf-8")

        for attachment in content.attachments or []:
            maintype, _, subtype = attachment.mimetype.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return message


def _optional_str(value: object) -> str | None:
    return str(value) if value else None


def _import_aiosmtplib() -> Any:
    # Lazy import of aiosmtplib
    try:
        import aiosmtplib
    except ImportError as e:
        raise ImportError(
            "aiosmtplib is required for SmtpEmailProvider. "
            "Install with: pip install 'realty-notifications[smtp]'"
        ) from e
    return aiosmtplib
