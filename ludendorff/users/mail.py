from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from starlette.concurrency import run_in_threadpool


@dataclass(slots=True)
class MailMessage:
    sender: str
    to: str
    subject: str
    html: str


class MailTransport(Protocol):
    async def send(self, message: MailMessage) -> None: ...


class SmtpMailTransport:
    def __init__(self, host: str, port: int, username: str, password: str, *, timeout: float = 30.0) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.timeout = timeout

    async def send(self, message: MailMessage) -> None:
        await run_in_threadpool(self._send, message)

    def _send(self, message: MailMessage) -> None:
        email = EmailMessage()
        email["From"] = message.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email.set_content(message.html, subtype="html")

        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as smtp:
            if self.username:
                smtp.login(self.username, self._password)
            smtp.send_message(email)
