"""Request helpers and fakes shared by the test modules."""

import re

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.models.role import Role, default_permissions
from app.models.staff import Staff
from app.services.email import EmailService
from app.services.staff import generate_employee_id


class RecordingMailer(EmailService):
    """Captures outgoing mail instead of talking to SMTP."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict] = []

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        self.sent.append({"to": to_email, "subject": subject, "text": text_body})
        return True

    def last_token(self, to_email: str | None = None) -> str:
        for mail in reversed(self.sent):
            if to_email is None or mail["to"] == to_email:
                match = re.search(r"token=([\w-]+)", mail["text"])
                if match:
                    return match.group(1)
        raise AssertionError("no token link was mailed")

    def subjects(self, to_email: str) -> list[str]:
        return [m["subject"] for m in self.sent if m["to"] == to_email]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: AsyncClient, email: str = "alice@example.com",
                   password: str = "secret123", **extra) -> dict:
    body = {"email": email, "password": password, "first_name": "Alice", **extra}
    resp = await client.post("/auth/register", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def login(client: AsyncClient, identifier: str, password: str, role: str = "user") -> dict:
    resp = await client.post(
        "/auth/login",
        json={"email_or_username": identifier, "password": password, "role": role},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def create_staff_member(
    session: AsyncSession,
    email: str,
    password: str = "staffpass1",
    role: Role = Role.ADMIN,
    has_pwd_changed: bool = True,
    is_active: bool = True,
) -> Staff:
    staff = Staff(
        email=email,
        hashed_password=hash_password(password),
        first_name="Sam",
        last_name="Staff",
        role=role.value,
        department="Operations",
        employee_id=generate_employee_id("Sam", "Staff"),
        permissions=default_permissions(role),
        is_active=is_active,
        has_pwd_changed=has_pwd_changed,
    )
    session.add(staff)
    await session.commit()
    await session.refresh(staff)
    return staff
