from __future__ import annotations

import logging
import mimetypes
import smtplib
import ssl
from email.mime.application import MIMEApplication
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from era.config import Settings
from era.errors import EmailError

log = logging.getLogger(__name__)

GENERATION_SUBJECT = "Your Generated Consumer Choice Webpage - ERA (v0.dev)"
SHARED_EXAMPLE_SUBJECT = "New Shared Example - ERA"
GENERATED_ATTACHMENT_NAME = "generated-webpage-v0.html"

# Jinja environment for the HTML email bodies shipped with the package
_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)


def render_email(template: str, **context) -> str:
    return _env.get_template(f"email/{template}").render(**context)


def _attachment(payload: bytes, filename: str, content_type: Optional[str] = None) -> MIMEBase:
    ctype = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
    # Parameters such as charset are set by the MIME classes themselves
    ctype = ctype.split(";", 1)[0].strip().lower()
    maintype, _, subtype = ctype.partition("/")
    if maintype == "text":
        part: MIMEBase = MIMEText(payload.decode("utf-8", errors="replace"), subtype or "plain", "utf-8")
    else:
        part = MIMEApplication(payload, _subtype=subtype or "octet-stream")
    part.add_header("Content-Disposition", "attachment", filename=filename)
    return part


class Mailer:
    """SMTP sender for result and shared-example notifications.

    Every failure (missing credentials, SMTP or socket errors) is raised as
    EmailError; callers decide whether it is fatal.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.settings.smtp_port == 465:
            return smtplib.SMTP_SSL(self.settings.smtp_host, self.settings.smtp_port, context=context, timeout=30)
        server = smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=30)
        try:
            server.starttls(context=context)
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        html_body: str,
        attachments: Sequence[MIMEBase] = (),
        reply_to: Optional[str] = None,
    ) -> None:
        if not self.settings.has_email_credentials:
            raise EmailError("Email credentials (EMAIL_USER/EMAIL_PASS) are not configured")
        to: List[str] = [r.strip() for r in recipients if r and r.strip()]
        if not to:
            raise EmailError("No email recipients")

        msg = MIMEMultipart()
        msg["Subject"] = subject
        msg["From"] = self.settings.email_user
        msg["To"] = ", ".join(to)
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        for part in attachments:
            msg.attach(part)

        try:
            with self._connect() as server:
                server.login(self.settings.email_user, self.settings.email_pass)
                server.sendmail(self.settings.email_user, to, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise EmailError(f"Failed to send email: {e}") from e
        log.info("email sent subject=%r recipients=%d", subject, len(to))

    def send_generation(self, user_email: Optional[str], prompt: str, code: str) -> None:
        html_body = render_email("generation.html", prompt=prompt, code=code)
        self.send(
            [user_email or "", self.settings.notification_email],
            GENERATION_SUBJECT,
            html_body,
            attachments=[_attachment(code.encode("utf-8"), GENERATED_ATTACHMENT_NAME, "text/html")],
        )

    def send_shared_example(
        self,
        your_email: Optional[str],
        description: Optional[str],
        attachment_path: Optional[Path] = None,
        attachment_name: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        attachments: List[MIMEBase] = []
        name = None
        if attachment_path is not None:
            name = attachment_name or attachment_path.name
            try:
                payload = attachment_path.read_bytes()
            except OSError as e:
                raise EmailError(f"Could not read shared file: {e}") from e
            attachments.append(_attachment(payload, name, content_type))
        html_body = render_email(
            "shared_example.html",
            your_email=your_email,
            description=description,
            attachment_name=name,
        )
        self.send(
            [self.settings.notification_email],
            SHARED_EXAMPLE_SUBJECT,
            html_body,
            attachments=attachments,
            reply_to=your_email or None,
        )
